"""Run configuration for the lint engine and fix pipeline.

One explicit, immutable configuration value is passed into every entry point;
nothing is read from ambient state.
"""

from flax import struct

from .exceptions import ConfigError

DUPLICATE_POLICIES = ("first", "most_complete")


@struct.dataclass
class UrdfixConfig:
    """Options shared by lint, fix, format and diff.

    Attributes:
        verbose: Emit debug logging from the pipeline stages.
        strict: Report lint warnings as errors.
        duplicate_policy: Which occurrence of a duplicated name survives
                          deduplication: ``"first"`` keeps the first
                          occurrence, ``"most_complete"`` keeps the one with
                          the most populated fields (ties go to the first).
        remove_unused_materials: Run the optional pass that drops top-level
                                 materials no visual refers to.
        fix_naming: Run the optional pass that renames links and joints
                    whose names are not identifiers.
        lint_workers: Number of threads used to run lint rules. ``1`` runs
                      them inline.
    """
    verbose: bool = struct.field(pytree_node=False, default=False)
    strict: bool = struct.field(pytree_node=False, default=False)
    duplicate_policy: str = struct.field(pytree_node=False, default="first")
    remove_unused_materials: bool = struct.field(pytree_node=False, default=False)
    fix_naming: bool = struct.field(pytree_node=False, default=False)
    lint_workers: int = struct.field(pytree_node=False, default=1)

    @classmethod
    def create(cls, **options) -> "UrdfixConfig":
        """Build a validated configuration, raising ConfigError on bad values."""
        config = cls(**options)
        if config.duplicate_policy not in DUPLICATE_POLICIES:
            raise ConfigError(
                f"Unknown duplicate policy '{config.duplicate_policy}', "
                f"expected one of: {', '.join(DUPLICATE_POLICIES)}"
            )
        if config.lint_workers < 1:
            raise ConfigError(f"lint_workers must be at least 1, got {config.lint_workers}")
        return config


DEFAULT_CONFIG = UrdfixConfig()
