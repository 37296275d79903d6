"""
Utilities: datasets, evaluation, serialization and reporting
"""
