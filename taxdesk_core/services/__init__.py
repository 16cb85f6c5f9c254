# taxdesk_core/services/__init__.py
"""
Stores: the only code that writes workflow records.

Each mutation validates the actor, locks the row, plans the change with
`taxdesk_core.workflows.engine`, applies it with a status
compare-and-set and appends an audit entry, all in one transaction.
"""
