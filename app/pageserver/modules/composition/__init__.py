"""
Composition module: page request handling, part fan-out/fan-in and rendering.
"""
