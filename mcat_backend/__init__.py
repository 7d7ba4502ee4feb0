"""
Media catalog backend: reconciliation engine, live watcher and HTTP surface.
"""
