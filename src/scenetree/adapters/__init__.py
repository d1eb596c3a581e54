"""Source views over the hierarchies of external asset libraries.

Each adapter module imports its library at module level, so import only the
ones whose library is installed.
"""
