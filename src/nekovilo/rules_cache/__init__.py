"""
In-memory trigger rule cache.

- **trigger_cache.py**: Holds the immutable snapshot of all enabled trigger
  rules. Reloads rebuild the snapshot from the rule store and publish it with
  a single reference swap, so readers never observe a half-built snapshot and
  a failed reload leaves the previous snapshot in place.
"""
