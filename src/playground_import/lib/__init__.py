"""Core library: GitHub access, filtering, retrieval, tree folding, storage.

Primary modules:
- ``playground_import.lib.importer`` for the end-to-end import pipeline.
- ``playground_import.lib.tree`` for the template tree and its JSON form.
- ``playground_import.lib.github`` for the PyGithub-backed remote client.
"""
