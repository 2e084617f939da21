"""
Job status workflow engine.

Decides whether a requested job status change is legal, who may make it,
which timestamps it sets, and records it for later analytics.
"""
