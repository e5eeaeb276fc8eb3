"""
kardex_kernel -- logging, errors, value helpers and the read-only
persistence boundary for the consolidated Kardex.
"""
