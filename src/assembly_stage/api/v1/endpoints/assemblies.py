"""Administrator endpoints: assemblies, roster import, session lifecycle."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from assembly_stage.core.errors import RecordNotFound
from assembly_stage.models import Assembly
from assembly_stage.repositories.assembly_repo import AssemblyRepository
from assembly_stage.schemas.assembly import (
    AssemblyCreate,
    AssemblyRead,
    RosterEntry,
    RosterImport,
    RosterImportResult,
    VoterAccess,
)
from assembly_stage.schemas.results import AssemblyClosure, FinalReport
from assembly_stage.schemas.session import AssemblySession
from assembly_stage.services.results import FinalReportService
from assembly_stage.services.roster import RosterImportService, build_roster_service
from assembly_stage.services.voter_access import issue_voter_access

from ..dependencies import AdminDep, SessionDep, SessionGateDep

router = APIRouter(prefix="/assemblies", tags=["admin"], dependencies=[AdminDep])


def get_roster_service(db: SessionDep, gate: SessionGateDep) -> RosterImportService:
    """Return a roster import service bound to the request's session."""
    return build_roster_service(db, gate)


def get_report_service(db: SessionDep, gate: SessionGateDep) -> FinalReportService:
    """Return a final report service bound to the request's session."""
    return FinalReportService(db, gate)


RosterServiceDep = Annotated[RosterImportService, Depends(get_roster_service)]
ReportServiceDep = Annotated[FinalReportService, Depends(get_report_service)]


def _get_assembly_or_404(db: Session, assembly_id: str) -> Assembly:
    assembly = AssemblyRepository(db).get(assembly_id)
    if assembly is None:
        raise RecordNotFound(f"Assembly {assembly_id} not found")
    return assembly


@router.post("", response_model=AssemblyRead, status_code=status.HTTP_201_CREATED)
async def create_assembly(payload: AssemblyCreate, db: SessionDep) -> Assembly:
    """Register a new assembly. It accepts no activity until a roster is imported."""
    assembly = AssemblyRepository(db).create(
        name=payload.name.strip(),
        required_quorum=payload.required_quorum,
    )
    db.commit()
    db.refresh(assembly)
    return assembly


@router.get("", response_model=list[AssemblyRead])
async def list_assemblies(db: SessionDep) -> list[Assembly]:
    """List assemblies, newest first."""
    return AssemblyRepository(db).list_recent()


@router.get("/{assembly_id}", response_model=AssemblyRead)
async def get_assembly(assembly_id: str, db: SessionDep) -> Assembly:
    """Return one assembly."""
    return _get_assembly_or_404(db, assembly_id)


@router.post("/{assembly_id}/roster", response_model=RosterImportResult)
async def import_roster(
    assembly_id: str,
    payload: RosterImport,
    service: RosterServiceDep,
) -> RosterImportResult:
    """Replace the roster and open the assembly session.

    Either both the roster and the active session exist afterwards, or
    neither does.
    """
    return service.import_roster(assembly_id, payload.units)


@router.get("/{assembly_id}/roster", response_model=list[RosterEntry])
async def get_roster(assembly_id: str, db: SessionDep) -> list[RosterEntry]:
    """Return the loaded roster of an assembly."""
    _get_assembly_or_404(db, assembly_id)
    return [
        RosterEntry(
            unit_id=unit.unit_id,
            owner_name=unit.owner_name,
            email=unit.email,
            coefficient=unit.coefficient,
        )
        for unit in AssemblyRepository(db).roster(assembly_id)
    ]


@router.post("/{assembly_id}/activate", response_model=AssemblySession)
async def activate_session(assembly_id: str, service: RosterServiceDep) -> AssemblySession:
    """Re-activate the session from the stored roster, renewing its lifetime."""
    return service.reactivate(assembly_id)


@router.get("/{assembly_id}/session", response_model=AssemblySession)
async def get_session(assembly_id: str, db: SessionDep, gate: SessionGateDep) -> AssemblySession:
    """Return the current session state of an assembly."""
    _get_assembly_or_404(db, assembly_id)
    return gate.get(assembly_id)


@router.post("/{assembly_id}/voter-links", response_model=list[VoterAccess])
async def create_voter_links(
    assembly_id: str,
    db: SessionDep,
    gate: SessionGateDep,
) -> list[VoterAccess]:
    """Issue a signed voting link for every unit of the loaded roster."""
    return issue_voter_access(db, gate, assembly_id)


@router.get("/{assembly_id}/results", response_model=FinalReport)
async def get_results(assembly_id: str, service: ReportServiceDep) -> FinalReport:
    """Return the current tallies of every agenda point."""
    return service.build_report(assembly_id)


@router.post("/{assembly_id}/close", response_model=AssemblyClosure)
async def close_assembly(
    assembly_id: str,
    db: SessionDep,
    service: ReportServiceDep,
) -> AssemblyClosure:
    """Produce the final report and only then close the session."""
    _get_assembly_or_404(db, assembly_id)
    report, session = service.close_assembly(assembly_id)
    return AssemblyClosure(report=report, session=session)

