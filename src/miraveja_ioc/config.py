from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContainerSettings(BaseSettings):
    """Behavioural switches of a container.

    Values can come from keyword arguments or from ``MIRAVEJA_IOC_*``
    environment variables (for example ``MIRAVEJA_IOC_ALLOW_CIRCULAR_REFERENCES=false``).

    Attributes:
        allow_definition_overriding: Re-registering a name replaces the old definition
            instead of raising ``DefinitionOverrideError``.
        allow_circular_references: Expose early references of singletons in creation so
            that setter and field injection cycles resolve.
        allow_raw_injection_despite_wrapping: Accept that a component received the raw
            early reference of a singleton that a post-processor later wrapped.
        cache_definition_metadata: Cache merged definitions and resolved constructors.
        allow_eager_class_loading: Let type lookups instantiate lazy factory components
            to learn their product type.
    """

    model_config = SettingsConfigDict(env_prefix="MIRAVEJA_IOC_", frozen=True)

    allow_definition_overriding: bool = Field(default=True, description="Allow definition overriding.")
    allow_circular_references: bool = Field(default=True, description="Resolve singleton setter cycles.")
    allow_raw_injection_despite_wrapping: bool = Field(
        default=False, description="Tolerate raw early references of wrapped singletons."
    )
    cache_definition_metadata: bool = Field(default=True, description="Cache merged definitions.")
    allow_eager_class_loading: bool = Field(default=True, description="Allow eager type determination.")
