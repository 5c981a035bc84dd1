"""Services Layer — async orchestration of the store around the pure core.

Invariants:
    - Every service receives its collaborators (store, codec, hasher) in __init__
    - Access gate decisions are taken before the first storage call

Design Decisions:
    - One service per concern (aggregation, reconciliation, re-authentication)
"""
