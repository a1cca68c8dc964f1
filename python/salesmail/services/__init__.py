"""Framework-free helpers used by the middleware and routes."""
