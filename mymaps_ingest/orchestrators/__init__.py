"""Pipeline orchestration.

Sequences the activities for a single layer and for a multi-layer run.
"""
