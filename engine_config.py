"""
Engine Configuration

Options controlling the grammar transformation pipeline and the parser.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping


@dataclass
class EngineConfig:
    """Configuration options for grammar reduction and predictive parsing."""
    remove_useless: bool = True
    remove_left_recursion: bool = True
    left_factor: bool = True
    require_end_of_stream: bool = True
    epsilon_label: str = "epsilon"

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> 'EngineConfig':
        """
        Build a config from a mapping such as a JSON request body.

        Unknown keys are ignored. Switches must be real booleans.
        """
        config = cls()
        for config_field in fields(cls):
            if config_field.name not in options:
                continue
            value = options[config_field.name]
            if config_field.type in (bool, 'bool') and not isinstance(value, bool):
                raise ValueError(f"Option '{config_field.name}' must be a boolean, got {value!r}")
            if config_field.type in (str, 'str') and not isinstance(value, str):
                raise ValueError(f"Option '{config_field.name}' must be a string, got {value!r}")
            setattr(config, config_field.name, value)
        return config
