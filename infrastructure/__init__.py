"""
Infrastructure: collaborator interfaces, providers, storage and wiring.
"""
