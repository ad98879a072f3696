"""
Mirrored X posts: persistence and read endpoints.
"""
