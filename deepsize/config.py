"""
Settings for `deep_size_of`.

Settings are plain pydantic models, so values are validated both when they
are read from a file and when they are assigned::

    from deepsize.config import config
    config.strict = True          # Raise on types which cannot be sized
    config.max_depth = 5000       # Needs a matching sys.setrecursionlimit

They can also be read from the ``[deepsize]`` section of an INI file::

    [deepsize]
    strict = true
    max_depth = 400

    >>> from deepsize.config import DeepSizeConfig
    >>> cfg = DeepSizeConfig.from_file("project.cfg")
    >>> deep_size_of(value, config=cfg)

The module-level `config` is only the default used when no `config` argument
is passed. It holds settings, never traversal state.
"""
from pathlib import Path
from typing import Optional, Union
import logging
from configparser import ConfigParser
from pydantic import BaseModel, ConfigDict, PositiveInt

logger = logging.getLogger(__name__)

class DeepSizeConfig(BaseModel):
    """
    max_depth: Maximum nesting depth followed by a traversal. Deeper
        allocations are not counted, and a warning is logged.
        ``None`` (default) derives the bound from the interpreter recursion
        limit. A traversal which still runs out of stack (because it was
        started from deep within the caller's own recursion) is truncated
        in the same way rather than raising `RecursionError`.
        An explicit value is used as-is.
    strict: If True, raise `TypeError` on values whose type can neither be
        introspected nor has a declared size. Default is to log a warning and
        count only their inline size.
    """
    model_config = ConfigDict(validate_default=True,   # Defaults go through the same validators
                              validate_assignment=True)

    max_depth: Optional[PositiveInt] = None
    strict: bool = False

    @classmethod
    def from_file(cls, path: Union[str,Path], section: str="deepsize"
                  ) -> "DeepSizeConfig":
        """
        Read settings from `section` of the INI file at `path`.
        Options which are absent keep their default value; a missing section
        yields a default configuration.
        """
        cfp = ConfigParser()
        with open(path) as f:
            cfp.read_file(f)
        if not cfp.has_section(section):
            logger.debug(f"No section '[{section}]' in '{path}'; "
                         "using default deepsize settings.")
            return cls()
        # Pydantic takes care of converting the strings
        return cls(**dict(cfp.items(section)))

config = DeepSizeConfig()
