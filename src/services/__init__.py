"""Event scheduling, participant resolution and persistence services."""
