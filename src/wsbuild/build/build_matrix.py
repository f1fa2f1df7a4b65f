"""Build matrix: named configuration presets a workspace selects between.

The matrix is a list of columns (e.g. "Compiler", "Target"). Each column holds
named presets and one current selection. The active configuration is the
combination of every column's selected preset, applied in column order.
"""

from dataclasses import dataclass, field
from typing import Any

from ..compilers.registry import available_compilers
from .configuration import Configuration
from .kinds import Optimization


@dataclass
class BuildMatrixColumn:
    """One dimension of the build matrix.

    Attributes:
        name: Column name, e.g. "Target"
        configurations: Preset name -> Configuration, in insertion order
        current: Name of the selected preset (None selects nothing)
    """

    name: str
    configurations: dict[str, Configuration] = field(default_factory=dict)
    current: str | None = None

    def add(self, preset: str, configuration: Configuration) -> None:
        """Add a preset; the first one added becomes the selection."""
        self.configurations[preset] = configuration
        if self.current is None:
            self.current = preset

    def current_configuration(self) -> Configuration | None:
        if self.current is None:
            return None
        return self.configurations.get(self.current)


class BuildMatrix:
    """Ordered set of build matrix columns."""

    def __init__(self) -> None:
        self.columns: list[BuildMatrixColumn] = []

    @classmethod
    def default(cls) -> "BuildMatrix":
        """Matrix with one preset per available compiler plus Debug/Release targets."""
        matrix = cls()
        compiler_column = matrix.new_column("Compiler")
        for kind in available_compilers():
            compiler_column.add(kind.value, Configuration(compiler=kind))

        target_column = matrix.new_column("Target")
        target_column.add("Debug", Configuration(optimization=Optimization.NONE, verbose=False))
        target_column.add("Release", Configuration(optimization=Optimization.SPEED))
        return matrix

    def new_column(self, name: str) -> BuildMatrixColumn:
        """Append a column, or return the existing column with that name."""
        existing = self.column_by_name(name)
        if existing is not None:
            return existing
        column = BuildMatrixColumn(name)
        self.columns.append(column)
        return column

    def column_by_name(self, name: str) -> BuildMatrixColumn | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def select(self, column_name: str, preset: str) -> None:
        """Select a preset in a column.

        Raises:
            KeyError: If the column or the preset does not exist.
        """
        column = self.column_by_name(column_name)
        if column is None:
            raise KeyError(f"Unknown build matrix column: {column_name}")
        if preset not in column.configurations:
            raise KeyError(f"Unknown configuration '{preset}' in column '{column_name}'")
        column.current = preset

    def current_configuration(self) -> Configuration:
        """Resolve the active configuration from every column's selection."""
        configuration = Configuration()
        for column in self.columns:
            selected = column.current_configuration()
            if selected is not None:
                configuration.override(selected)
        return configuration

    def selection(self) -> dict[str, str]:
        """Column name -> selected preset name."""
        return {column.name: column.current for column in self.columns if column.current is not None}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted Matrix table."""
        return {
            column.name: {preset: config.to_dict() for preset, config in column.configurations.items()}
            for column in self.columns
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], selection: dict[str, str] | None = None) -> "BuildMatrix":
        """Deserialize a Matrix table and an optional Selection table."""
        matrix = cls()
        for column_name, presets in data.items():
            column = matrix.new_column(column_name)
            if not isinstance(presets, dict):
                continue
            for preset, values in presets.items():
                column.add(preset, Configuration.from_dict(values if isinstance(values, dict) else {}))

        for column_name, preset in (selection or {}).items():
            column = matrix.column_by_name(column_name)
            if column is not None and preset in column.configurations:
                column.current = preset
        return matrix
