"""Engine package - pipeline business logic.

Modules:
    - dates: Calendar helpers at local-date granularity
    - reminders: Per-stage follow-up rules and due-date queries
    - stages: Stage transitions and lead auto-aging
    - needs: Borrower needs checklist
    - store: Deal collection with derived views
    - export: CSV and Excel export
"""
