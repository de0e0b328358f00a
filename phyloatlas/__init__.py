"""PhyloAtlas: distance-based phylogenetic trees from aligned sequences.

Subpackages:
- core: alignment input, distances, tree model, Newick, leaf ordering
- cluster: agglomerative linkage clustering
- visualization: tree plots
"""

__version__ = '0.1.0'
