"""Core Layer — pure domain logic: access rules, field codec, row assembly.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or models/
    - No function in core/ performs IO or awaits anything

Design Decisions:
    - Functional core separated from imperative shell: services/ orchestrate the
      async storage calls around these pure decisions
"""
