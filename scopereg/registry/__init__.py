"""Registry — the namespace tree of scopes and the lookups over it.

The registry provides:
- Indexing: mirror a scopes directory into a namespace tree
- Lookup: first-match search by scope name or (parent, scope) path
- Loading: preload everything, or load and cache scopes on demand
- Rebuild: reload one scope, or the whole tree, from disk
"""
