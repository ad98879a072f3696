"""
Categories and post<->category links.
"""
