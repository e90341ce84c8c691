"""API application, routes and models."""
