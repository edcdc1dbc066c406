"""Infrastructure layer — rule files, dependency graph, workspace.

This layer depends on the engine and third-party libs (ruamel.yaml, NetworkX).
It must never import from services, commands, or output.
"""
