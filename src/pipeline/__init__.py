"""Pipeline composition and trained models.

A pipeline is an untrained, immutable chain of transform stages ending in an
optional trainer. Fitting it produces a ``Model``, which never changes again.
"""
