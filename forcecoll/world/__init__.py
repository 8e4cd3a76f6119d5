"""World subpackage - Named contact geometry"""
from .vertex_registry import VertexRegistry
