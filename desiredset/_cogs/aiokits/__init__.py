"""
Some tools for asyncio that are missing in the standard library.

These tools are independent of the library's domain and could be extracted
as a separate library. They are kept here only to avoid extra dependencies.
"""
