"""Adapters for the care engine's external collaborators (storage, strains, dispatch, profiles)."""
