"""
Configuration package for the Conversion Queue Engine.

Static settings live in module-level constants so they can be imported anywhere
without setup. User overrides (tool locations, output directories, terminate
grace period) are read once from ``config.user.yaml`` at the project root.
"""
