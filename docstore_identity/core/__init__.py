"""
Core helpers shared by the storage, repository and store layers.
"""
