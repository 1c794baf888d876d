from enum import Enum, IntEnum


class ScopeName(str, Enum):
    """Built-in component scopes.

    Attributes:
        SINGLETON: One shared instance per container.
        PROTOTYPE: A new instance on every retrieval.
    """

    SINGLETON = "singleton"
    PROTOTYPE = "prototype"

    def __str__(self) -> str:
        return self.value


class Role(IntEnum):
    """How a definition relates to the application.

    Attributes:
        APPLICATION: A component the user declared.
        SUPPORT: A supporting part of some larger configuration.
        INFRASTRUCTURE: Framework-internal, of no interest to the end user.
    """

    APPLICATION = 0
    SUPPORT = 1
    INFRASTRUCTURE = 2


class AutowireMode(str, Enum):
    """Controls which injection points the container fills on its own.

    Attributes:
        NO: Only configured values are injected.
        BY_NAME: Annotated attributes are matched to components by attribute name.
        BY_TYPE: Annotated attributes are matched to components by type.
        CONSTRUCTOR: Unconfigured constructor parameters are resolved by type.
    """

    NO = "no"
    BY_NAME = "by_name"
    BY_TYPE = "by_type"
    CONSTRUCTOR = "constructor"

    def __str__(self) -> str:
        return self.value


class SingletonState(str, Enum):
    """Tier a singleton name currently occupies in the singleton cache.

    Attributes:
        EARLY_FACTORY: In creation; a one-shot factory can expose an early reference.
        EARLY_REFERENCE: In creation; an early reference has been handed out.
        FINISHED: Fully built and initialized.
    """

    EARLY_FACTORY = "early_factory"
    EARLY_REFERENCE = "early_reference"
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.value
