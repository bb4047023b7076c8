"""
Article knowledge graph toolkit.

Packages:
- knowledge_graph: batch materialization into a typed property graph and
  question answering over it
- utils: shared helpers (logging setup)
"""
