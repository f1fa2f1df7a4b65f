"""Project dependency ordering.

Projects reference each other by name through their library lists. The build
needs every project to come after the projects it links against, so link jobs
of dependencies exist before their dependents are submitted.

Ordering uses Kahn's algorithm over project names. Among projects that are
ready at the same time, workspace order is kept, so the result is
deterministic. Library names that match no project are external libraries
and add no edge.
"""

from collections import deque
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from .project import Project


class DependencyCycleError(ValueError):
    """Raised when projects reference each other in a cycle.

    Attributes:
        projects: Names of the projects that could not be ordered
    """

    def __init__(self, projects: Sequence[str]) -> None:
        self.projects = list(projects)
        super().__init__(f"Cyclic project dependency between: {', '.join(self.projects)}")


def project_dependencies(project: "Project", known_names: Iterable[str]) -> list[str]:
    """Names of workspace projects a project links against, in library order."""
    known = set(known_names)
    seen: set[str] = set()
    dependencies = []
    for library in project.local_configuration.libraries:
        if library in known and library not in seen:
            seen.add(library)
            dependencies.append(library)
    return dependencies


def order_projects(projects: Sequence["Project"]) -> list["Project"]:
    """Topologically sort projects so dependencies come first.

    Args:
        projects: Projects in workspace order. Names must be unique.

    Returns:
        Projects ordered so every project follows all projects it references.

    Raises:
        DependencyCycleError: If the references contain a cycle (including self-references).
        ValueError: If two projects share a name.
    """
    by_name: dict[str, "Project"] = {}
    for project in projects:
        if project.name in by_name:
            raise ValueError(f"Duplicate project name: {project.name}")
        by_name[project.name] = project

    position = {name: index for index, name in enumerate(by_name)}
    in_degree: dict[str, int] = {name: 0 for name in by_name}
    dependents: dict[str, list[str]] = {name: [] for name in by_name}

    for name, project in by_name.items():
        for dependency in project_dependencies(project, by_name):
            in_degree[name] += 1
            dependents[dependency].append(name)

    ready = deque(name for name in by_name if in_degree[name] == 0)
    ordered: list[str] = []
    while ready:
        name = ready.popleft()
        ordered.append(name)
        released = []
        for dependent in dependents[name]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                released.append(dependent)
        # Keep workspace order among newly released projects
        ready.extend(sorted(released, key=position.__getitem__))

    if len(ordered) != len(by_name):
        remaining = [name for name in by_name if in_degree[name] > 0]
        raise DependencyCycleError(remaining)

    return [by_name[name] for name in ordered]
