"""Dependency graph layer — NetworkX-backed edge registry and builder."""

from downstream_trigger.graph.dependency import DependencyGraph, DependencyGraphBuilder

__all__ = ["DependencyGraph", "DependencyGraphBuilder"]
