"""Per-test options, read from a fixture's ``metadata.test`` block.

Validated with pydantic so a bad fixture fails before a renderer is
created, with the offending key in the message.  Keys use the fixture
spelling (camelCase); Python code reads the snake_case attributes::

    opts = TestOptions.from_style(style)
    opts.pixel_ratio, opts.operations, opts.query_geometry

Unknown keys are ignored: fixture metadata also carries fields meant for
the comparison step (``allowed``, ``diff`` ...), not for this harness.
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, ValidationError, field_validator

from render_harness.errors import ConfigError, OperationError
from render_harness.ops.operations import Operation, parse_operations


class FakeCanvasOptions(BaseModel):
    """``addFakeCanvas``: inject a canvas element filled from an image."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Element id the canvas source refers to")
    image: str = Field(..., min_length=1, description="Initial frame, relative to fixtures dir")


class TestOptions(BaseModel):
    """Options record consumed once per harness run."""

    __test__: ClassVar[bool] = False  # not a pytest test class

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    width: int = Field(..., gt=0, description="Container width (CSS px)")
    height: int = Field(..., gt=0, description="Container height (CSS px)")
    pixel_ratio: float = Field(1.0, gt=0, alias="pixelRatio")
    classes: Optional[Tuple[str, ...]] = None
    axonometric: bool = False
    skew: Tuple[float, float] = (0.0, 0.0)
    fade_duration: float = Field(0.0, ge=0, alias="fadeDuration")
    local_ideograph_font_family: Union[str, bool] = Field(
        False, alias="localIdeographFontFamily"
    )
    cross_source_collisions: bool = Field(True, alias="crossSourceCollisions")
    timeout: Optional[float] = Field(None, gt=0, description="Run timeout in ms")
    debug: bool = False
    show_overdraw_inspector: bool = Field(False, alias="showOverdrawInspector")
    show_padding: bool = Field(False, alias="showPadding")
    collision_debug: bool = Field(False, alias="collisionDebug")
    operations: Tuple[InstanceOf[Operation], ...] = ()
    query_geometry: Optional[Any] = Field(None, alias="queryGeometry")
    query_options: Optional[Mapping[str, Any]] = Field(None, alias="queryOptions")
    add_fake_canvas: Optional[FakeCanvasOptions] = Field(None, alias="addFakeCanvas")

    @field_validator("operations", mode="before")
    @classmethod
    def parse_wire_operations(cls, v: Any) -> Tuple[Operation, ...]:
        try:
            return parse_operations(v)
        except OperationError as exc:
            # pydantic wraps ValueError into a ValidationError with the field path
            raise ValueError(str(exc)) from exc

    @field_validator("local_ideograph_font_family", mode="before")
    @classmethod
    def normalise_font_family(cls, v: Any) -> Union[str, bool]:
        if v is None or v == "":
            return False
        return v

    @field_validator("timeout", mode="before")
    @classmethod
    def zero_timeout_means_default(cls, v: Any) -> Any:
        # A fixture "timeout": 0 falls back to the harness default
        if v in (None, 0):
            return None
        return v

    @classmethod
    def parse(cls, raw: Union["TestOptions", Mapping[str, Any]]) -> "TestOptions":
        """Validate a raw options mapping.

        Raises
        ------
        ConfigError
            With every validation problem listed.
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, Mapping):
            raise ConfigError(f"test options must be a mapping, got {type(raw).__name__}")
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as exc:
            raise ConfigError(f"Invalid test options: {exc}") from exc

    @classmethod
    def from_style(cls, style: Mapping[str, Any]) -> "TestOptions":
        """Read options from ``style["metadata"]["test"]``."""
        metadata = style.get("metadata") or {}
        test = metadata.get("test")
        if test is None:
            raise ConfigError("style has no metadata.test block")
        return cls.parse(test)

    def effective_timeout_ms(self, default_ms: float) -> float:
        return self.timeout if self.timeout is not None else default_ms

    def effective_pixel_ratio(self, default: float) -> float:
        """``pixelRatio`` if the fixture set it, else the suite default."""
        if "pixel_ratio" in self.model_fields_set:
            return self.pixel_ratio
        return default
