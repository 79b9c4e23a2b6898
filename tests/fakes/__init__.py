"""In-memory stand-ins for Postgres and Redis used by the unit tests."""
