"""HTTP API package for Assembly Stage."""
