"""Squares pool domain services: grid scoring, quarter finalization and picks.

Pure functions (scoring, transitions) are kept free of Flask and the
database so routes, socket handlers and the live engine can share them.
"""
