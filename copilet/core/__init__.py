"""
Core algorithms: path resolution, caching, manifest parsing, download
tracking and the bundle downloader.
"""
