"""
Integration tests for wsbuild.

These tests run complete workspace builds through the job scheduler, from
compile jobs through links to the final aggregation job.
"""
