"""Core data model and algorithms for distance-based tree building.

Submodules:
- input: Aligned sequence loading and validation
- distances: Pairwise distance matrix computation
- tree: Binary tree model and builder
- newick: Newick parsing and writing
- reorder: Crossing-free leaf ordering
- exceptions: Error taxonomy
"""

__all__ = ['input', 'distances', 'tree', 'newick', 'reorder', 'exceptions']
