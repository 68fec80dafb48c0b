"""
Domain Layer - Clause state, tagged values and errors.

No external dependencies allowed in this layer.
"""
