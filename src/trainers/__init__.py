"""Pluggable trainer variants.

This package holds the closed set of learning algorithms a pipeline can
end in. Each trainer fits once into a frozen scoring artifact.
"""
