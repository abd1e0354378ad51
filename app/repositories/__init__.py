"""
Repositories package

Each repository encapsulates database operations for a model:
- versions_repository.py
- version_dependencies_repository.py

Usage:
    from repositories.versions_repository import VersionsRepository
    version = VersionsRepository.get_by_id(version_id)
"""
