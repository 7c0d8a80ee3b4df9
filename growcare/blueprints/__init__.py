"""Flask blueprints exposing the care engine over HTTP."""
