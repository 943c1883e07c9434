"""Error kinds raised while compiling an assembly section."""


class MalformedModelError(ValueError):
    """The model cannot be compiled (empty subassembly, unknown element type)."""


class MaterialLoadError(OSError):
    """A material texture could not be read."""


class GeometryOperationError(RuntimeError):
    """A boolean solid operation received degenerate input or failed."""
