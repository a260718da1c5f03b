"""HTTP controllers (Flask blueprints)."""
