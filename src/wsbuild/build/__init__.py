"""Workspace model and build graph.

Modules:
    configuration: Layered compiler/linker options
    build_matrix: Named configuration presets selected per column
    build_context: Scheduler and process runner shared by a build's jobs
    project: Source files compiled into one artifact
    workspace: Projects ordered and linked into a job graph
    graph: Topological ordering of projects
    serialization: Object-tree project and workspace files
    events: BuildFinished notification
"""
