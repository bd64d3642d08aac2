"""
Core business logic modules for the opportunity engine.

Submodules:
- associations: Association reconciliation and the status audit log
- filters: List-view predicate composition
- notifications: Reminder scheduling, dispatch and the reminder worker
- opportunities: Create/update workflow wiring the above together
"""
