"""Pydantic schemas for the Assembly Stage API and services."""
