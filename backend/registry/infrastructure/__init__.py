"""Infrastructure Layer — persistence, credential hashing, tokens and logging.

Invariants:
    - Infrastructure implements the protocols declared in core/repository_protocols.py
    - Library exceptions (SQLAlchemy, PyJWT, bcrypt) are mapped to registry errors here

Design Decisions:
    - Thin wrappers over raw libraries: one collaborator per file
"""
