"""wsbuild - workspace build system for C/C++ projects.

A workspace groups projects; building it runs every compile and link step as
a job on a dependency-aware thread pool.
"""

__version__ = "0.1.0"
