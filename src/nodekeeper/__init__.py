"""
nodekeeper: offline maintenance tools for hierarchical node stores.

Walks, lists, repairs and prunes a node store directly through its low-level
storage contract, without a repository engine in between.
"""

__version__ = "0.1.0"
