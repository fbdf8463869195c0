"""
Credential lookup for the Airtable tools.

A CredentialSpec maps a logical credential name to an environment variable.
CredentialManager resolves values in this order: explicit overrides (tests),
the process environment, the .env file, then the spec's default.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import dotenv_values


@dataclass
class CredentialSpec:
    """Where a credential comes from and which tools need it."""

    env_var: str
    tools: List[str] = field(default_factory=list)
    required: bool = True
    default: Optional[str] = None
    help_url: str = ""
    description: str = ""


class CredentialError(Exception):
    """Raised when required credentials are missing."""
    pass


class CredentialManager:
    """Resolves Airtable credentials by logical name ('airtable', 'airtable_auth_type')."""

    def __init__(
        self,
        specs: Optional[Dict[str, CredentialSpec]] = None,
        _overrides: Optional[Dict[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ):
        if specs is None:
            from . import CREDENTIAL_SPECS

            specs = CREDENTIAL_SPECS

        self._specs = specs
        self._overrides = _overrides or {}
        self._dotenv_path = dotenv_path

    @classmethod
    def for_testing(
        cls,
        overrides: Dict[str, str],
        specs: Optional[Dict[str, CredentialSpec]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> "CredentialManager":
        """Create a CredentialManager whose values win over env and .env."""
        return cls(specs=specs, _overrides=overrides, dotenv_path=dotenv_path)

    def get(self, name: str) -> Optional[str]:
        """Value of credential `name`, or None when it is not set anywhere."""
        spec = self._specs.get(name)
        if spec is None:
            raise KeyError(f"Unknown credential '{name}'. Available: {sorted(self._specs)}")

        if name in self._overrides:
            return self._overrides[name]
        # .env is re-read on every lookup so a token added while the server runs is picked up.
        return os.environ.get(spec.env_var) or self._dotenv().get(spec.env_var) or spec.default

    def is_available(self, name: str) -> bool:
        return bool(self.get(name))

    def validate_for_tools(self, tool_names: List[str]) -> None:
        """Raise CredentialError naming every required variable the given tools lack."""
        lines = []
        for name, spec in self._specs.items():
            affected = [t for t in tool_names if t in spec.tools]
            if not affected or not spec.required or self.is_available(name):
                continue
            lines.append(f"  {', '.join(affected)} requires {spec.env_var}")
            if spec.description:
                lines.append(f"    {spec.description}")
            if spec.help_url:
                lines.append(f"    Get a token at: {spec.help_url}")
            lines.append(f"    Set via: export {spec.env_var}=your_token")

        if lines:
            raise CredentialError("\n".join(["Missing Airtable credentials", *lines]))

    def _dotenv(self) -> Dict[str, Optional[str]]:
        path = self._dotenv_path or Path.cwd() / ".env"
        if not path.exists():
            return {}
        return dotenv_values(path)
