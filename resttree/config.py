"""
Process-wide options.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "RESTTREE_"


class Options(BaseModel):
    """Pipeline configuration, immutable once created.

    Attributes:
        default_limit: Listing page size used when the client sends no valid
            ``limit`` parameter
        error_stack: Send the formatted traceback instead of the message in
            error responses (development only)
        request_timeout: Seconds a request may take to reach a terminal
            outcome before it is answered with 503; ``None`` waits forever
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_limit: int = Field(10, gt=0)
    error_stack: bool = False
    request_timeout: Optional[float] = Field(None, gt=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, prefix: str = ENV_PREFIX) -> "Options":
        """Build options from ``RESTTREE_*`` environment variables.

        Unset variables keep their defaults; values are validated by pydantic,
        so ``RESTTREE_ERROR_STACK=yes`` or ``RESTTREE_DEFAULT_LIMIT=25`` work.
        """
        if environ is None:
            environ = os.environ

        values = {}
        for name in cls.model_fields:
            raw = environ.get(prefix + name.upper())
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()
        return cls.model_validate(values)
