"""
Filesystem watchers feeding the compression pipeline.
"""
