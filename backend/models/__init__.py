"""
Models

- models.domain: storage-agnostic dataclasses used by services and repositories
- models.api: pydantic request/response models used by the routers
"""
