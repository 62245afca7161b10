"""Exception types raised by cloudPeek."""

from typing import Optional


class CloudPeekError(Exception):
    """Base class for all cloudPeek errors"""


class ViewerSetupError(CloudPeekError):
    """Window, GL context, shader or buffer creation failed. Fatal at startup."""


class GpuError(CloudPeekError):
    """A GL call failed during steady-state rendering. Logged, never fatal."""

    def __init__(self, description: str, code: Optional[int] = None, operation: str = ""):
        self.description = description
        self.code = code
        self.operation = operation
        where = f" in {operation}" if operation else ""
        super().__init__(f"{description}{where}")


_GL_ERROR_NAMES = {
    0x0000: "GL_NO_ERROR",
    0x0500: "GL_INVALID_ENUM",
    0x0501: "GL_INVALID_VALUE",
    0x0502: "GL_INVALID_OPERATION",
    0x0503: "GL_STACK_OVERFLOW",
    0x0504: "GL_STACK_UNDERFLOW",
    0x0505: "GL_OUT_OF_MEMORY",
    0x0506: "GL_INVALID_FRAMEBUFFER_OPERATION",
}


def gl_error_string(code: Optional[int]) -> str:
    """Translate an OpenGL error code to its symbolic name."""
    if code is None:
        return "Unknown OpenGL Error"
    return _GL_ERROR_NAMES.get(int(code), f"Unknown OpenGL Error (0x{int(code):04X})")


class BatchValidationError(CloudPeekError, ValueError):
    """A producer handed over a malformed batch (shape or length mismatch)."""


class PointFileError(CloudPeekError, ValueError):
    """A point file could not be read or is in an unsupported format."""
