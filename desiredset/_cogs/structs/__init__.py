"""
All the structures to represent the objects, their keys, sets, and plans.

Used in the reconciliation routines to key the desired & existing objects,
to compare the sets of them, and to record the intended changes.

All the functions are purely data-manipulative and computational.
No external calls or any i/o activities are done here.
"""
