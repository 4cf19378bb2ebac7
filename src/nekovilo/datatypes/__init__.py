"""
Shared datatypes for Nekovilo: Discord identifier wrappers, trigger rule
records, cache snapshots, and the trigger error taxonomy.
"""
