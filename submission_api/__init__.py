"""
Submission backend for the online judge.

Callable endpoints that read and write submission records kept in a
document store, with submitted code kept in a blob store.
"""
