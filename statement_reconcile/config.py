"""Runtime configuration, read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = 'STATEMENT_RECONCILE_'

_FALSE_VALUES = ('0', 'false', 'no', 'off')


@dataclass
class Config:
    """Settings shared by parsing, export and reconciliation."""

    use_custom_id: bool = True
    output_path: Optional[Path] = None
    budget_id: str = ''
    max_rows: int = 1000

    @classmethod
    def from_env(cls, environ=None):
        """Build a Config from STATEMENT_RECONCILE_* environment variables.

        Args:
            environ (Mapping, optional): Environment to read. Defaults to os.environ.

        Returns:
            Config: Loaded configuration

        Raises:
            ValueError: If STATEMENT_RECONCILE_MAX_ROWS is not a positive integer
        """
        env = os.environ if environ is None else environ

        use_custom_id = env.get(f'{ENV_PREFIX}USE_CUSTOM_ID', '1').strip().lower() not in _FALSE_VALUES

        output_dir = env.get(f'{ENV_PREFIX}OUTPUT_DIR', '').strip()
        output_path = Path(output_dir).expanduser() if output_dir else None

        raw_max_rows = env.get(f'{ENV_PREFIX}MAX_ROWS', '').strip()
        max_rows = cls.max_rows
        if raw_max_rows:
            try:
                max_rows = int(raw_max_rows)
            except ValueError:
                raise ValueError(f"Invalid {ENV_PREFIX}MAX_ROWS: {raw_max_rows}")
            if max_rows <= 0:
                raise ValueError(f"Invalid {ENV_PREFIX}MAX_ROWS: {raw_max_rows}")

        return cls(
            use_custom_id=use_custom_id,
            output_path=output_path,
            budget_id=env.get(f'{ENV_PREFIX}BUDGET_ID', '').strip(),
            max_rows=max_rows,
        )
