"""
Application services for the care engine.

Each service is constructed with its collaborators; ServiceContainer.build()
wires one long-lived instance of each per process.
"""
