"""Ready-made sample tasks.

Each sample defines its record types, its text file layout, and a builder
for the pipeline that solves it.
"""
