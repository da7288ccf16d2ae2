"""Plan graph builder.

Tickets become leaf tasks, assignees become Staff resources, and the
optional epic grouping and milestone chain is layered on top before
dependency keys are resolved.
"""
