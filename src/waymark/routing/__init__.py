"""Routing: glob patterns, the route table, selection and binding.

Routes are registered during setup and built into an immutable table;
each request selects from it and binds the winning route's fields.
"""
