"""
Inspection engine services. Routes stay thin; every rule lives here.
"""
