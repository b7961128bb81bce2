"""
Rule engine and service layer.

Pure functions over immutable snapshots; nothing in this package touches the
store. Blueprints read a snapshot, call a service and commit the result.
"""
