"""
Repository layer: per-resource query and persistence functions.
"""
