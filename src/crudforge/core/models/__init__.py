"""Descriptor models shared by introspection, query parsing and routing."""

from crudforge.core.models.descriptor import Column, FieldDescriptor, ModelDescriptor

__all__ = ["Column", "FieldDescriptor", "ModelDescriptor"]
