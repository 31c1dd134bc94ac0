"""
CLI (Command Line Interface) for the JavaScript Rendering Differential Analyzer.

This is a thin wrapper around the core engine. All business logic lives
in the renderdiff package so other collaborators can reuse it.
"""
