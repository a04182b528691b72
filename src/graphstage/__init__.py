"""
graphstage: Map/reduce stages for traversal-style graph operations.

Stages filter, count, order, project and transform a graph encoded as a
stream of vertex records annotated with path multiplicities.
"""

__version__ = "0.1.0"
