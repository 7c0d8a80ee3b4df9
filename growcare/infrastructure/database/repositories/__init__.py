from growcare.infrastructure.database.repositories.plant_tasks import PlantTaskRepository

__all__ = ["PlantTaskRepository"]
