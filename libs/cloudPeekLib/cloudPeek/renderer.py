#!/usr/bin/env python3
"""
OpenGL renderer for the point cloud viewer (OpenGL 3.3 core, PyOpenGL).

Owns every GPU handle: three shader programs and three vertex arrays (grid,
axes, points). All methods must run on the thread that holds the GL context.
Handles are released through a single ExitStack, so a failure halfway through
initialize() frees whatever was already created.
"""

import ctypes
import logging
from contextlib import ExitStack, contextmanager
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from OpenGL.GL import *
from OpenGL.error import Error as OpenGLError, GLError

from . import shaders
from . import vecMathHelper as vm
from .config import ViewerConfig
from .errors import GpuError, ViewerSetupError, gl_error_string
from .geometry import build_axes_vertices, build_grid_vertices
from .store import CloudSnapshot

logger = logging.getLogger(__name__)

FLOAT_SIZE = 4


@contextmanager
def gpu_errors(operation: str):
    """Turn GL failures inside the block into GpuError with a decoded name."""
    try:
        yield
    except GLError as e:
        code = getattr(e, "err", None)
        raise GpuError(gl_error_string(code), code, operation) from e
    except OpenGLError as e:
        # Binding level failures, e.g. a missing entry point
        raise GpuError(f"{type(e).__name__}: {e}", None, operation) from e
    code = glGetError()
    if code != GL_NO_ERROR:
        raise GpuError(gl_error_string(code), code, operation)


def _decode_log(log) -> str:
    if isinstance(log, bytes):
        return log.decode("utf-8", errors="replace")
    return str(log)


# =========================================================================
# Shader programs
# =========================================================================

def _compile_shader(source: str, shader_type) -> int:
    shader = glCreateShader(shader_type)
    glShaderSource(shader, source)
    glCompileShader(shader)
    if not glGetShaderiv(shader, GL_COMPILE_STATUS):
        info = _decode_log(glGetShaderInfoLog(shader))
        glDeleteShader(shader)
        raise ViewerSetupError(f"Shader compilation failed:\n{info}")
    return shader


class ShaderProgram:
    """Linked vertex + fragment program with cached uniform locations"""

    def __init__(self, name: str, vertex_src: str, fragment_src: str):
        self.name = name
        self.handle = 0
        self._uniforms: Dict[str, int] = {}

        vertex_shader = _compile_shader(vertex_src, GL_VERTEX_SHADER)
        try:
            fragment_shader = _compile_shader(fragment_src, GL_FRAGMENT_SHADER)
        except ViewerSetupError:
            glDeleteShader(vertex_shader)
            raise

        program = glCreateProgram()
        glAttachShader(program, vertex_shader)
        glAttachShader(program, fragment_shader)
        glLinkProgram(program)

        # Shaders can be deleted once linked (or failed to link)
        glDeleteShader(vertex_shader)
        glDeleteShader(fragment_shader)

        if not glGetProgramiv(program, GL_LINK_STATUS):
            info = _decode_log(glGetProgramInfoLog(program))
            glDeleteProgram(program)
            raise ViewerSetupError(f"Program linking failed for '{name}':\n{info}")

        self.handle = program
        logger.debug("Shader program '%s' created", name)

    def use(self):
        glUseProgram(self.handle)

    def uniform_location(self, name: str) -> int:
        loc = self._uniforms.get(name)
        if loc is None:
            loc = glGetUniformLocation(self.handle, name)
            self._uniforms[name] = loc
        return loc

    def set_matrix(self, name: str, mat: np.ndarray):
        glUniformMatrix4fv(self.uniform_location(name), 1, GL_FALSE, vm.to_gl(mat))

    def set_float(self, name: str, value: float):
        glUniform1f(self.uniform_location(name), float(value))

    def release(self):
        if self.handle:
            glDeleteProgram(self.handle)
            self.handle = 0


# =========================================================================
# Vertex arrays
# =========================================================================

# (location, components, stride in floats, offset in floats)
Attribute = Tuple[int, int, int, int]


class VertexArray:
    """VAO plus the vertex buffers bound to it"""

    def __init__(self, name: str):
        self.name = name
        self.vao = glGenVertexArrays(1)
        self.buffers: List[int] = []

    def add_buffer(self, data: Optional[np.ndarray], attributes: Sequence[Attribute],
                   usage=GL_STATIC_DRAW) -> int:
        """Create a VBO, fill it and describe its float attributes. Returns the buffer index."""
        vbo = glGenBuffers(1)
        self.buffers.append(vbo)

        glBindVertexArray(self.vao)
        glBindBuffer(GL_ARRAY_BUFFER, vbo)
        self._buffer_data(data, usage)
        for location, components, stride, offset in attributes:
            glVertexAttribPointer(location, components, GL_FLOAT, GL_FALSE,
                                  stride * FLOAT_SIZE, ctypes.c_void_p(offset * FLOAT_SIZE))
            glEnableVertexAttribArray(location)
        glBindBuffer(GL_ARRAY_BUFFER, 0)
        glBindVertexArray(0)
        return len(self.buffers) - 1

    def replace_data(self, index: int, data: Optional[np.ndarray], usage=GL_DYNAMIC_DRAW):
        """Orphan the buffer and upload new contents in full."""
        glBindBuffer(GL_ARRAY_BUFFER, self.buffers[index])
        self._buffer_data(data, usage)
        glBindBuffer(GL_ARRAY_BUFFER, 0)

    @staticmethod
    def _buffer_data(data: Optional[np.ndarray], usage):
        if data is None or data.size == 0:
            glBufferData(GL_ARRAY_BUFFER, 0, None, usage)
        else:
            data = np.ascontiguousarray(data, dtype=np.float32)
            glBufferData(GL_ARRAY_BUFFER, data.nbytes, data, usage)

    def bind(self):
        glBindVertexArray(self.vao)

    @staticmethod
    def unbind():
        glBindVertexArray(0)

    def release(self):
        if self.buffers:
            glDeleteBuffers(len(self.buffers), self.buffers)
            self.buffers = []
        if self.vao:
            glDeleteVertexArrays(1, [self.vao])
            self.vao = 0


# =========================================================================
# Renderer
# =========================================================================

class GLRenderer:
    """GPU side of the viewer: grid, axes and point cloud passes."""

    def __init__(self, config: Optional[ViewerConfig] = None):
        self.config = config or ViewerConfig()
        self.point_count = 0
        self._grid_vertex_count = 0
        self._axes_vertex_count = 0
        self._resources: Optional[ExitStack] = None

        self._point_program: Optional[ShaderProgram] = None
        self._grid_program: Optional[ShaderProgram] = None
        self._axes_program: Optional[ShaderProgram] = None
        self._point_vao: Optional[VertexArray] = None
        self._grid_vao: Optional[VertexArray] = None
        self._axes_vao: Optional[VertexArray] = None

    @property
    def initialized(self) -> bool:
        return self._resources is not None

    def initialize(self):
        """Create programs and buffers. Requires a current GL context.

        Raises:
            ViewerSetupError: if any GL object cannot be created
        """
        if self._resources is not None:
            return
        try:
            with ExitStack() as stack:
                glEnable(GL_DEPTH_TEST)
                glEnable(GL_PROGRAM_POINT_SIZE)

                self._point_program = self._acquire(stack, ShaderProgram(
                    "points", shaders.POINT_VERTEX_SHADER, shaders.POINT_FRAGMENT_SHADER))
                self._grid_program = self._acquire(stack, ShaderProgram(
                    "grid", shaders.GRID_VERTEX_SHADER, shaders.GRID_FRAGMENT_SHADER))
                self._axes_program = self._acquire(stack, ShaderProgram(
                    "axes", shaders.AXES_VERTEX_SHADER, shaders.AXES_FRAGMENT_SHADER))

                self._point_vao = self._acquire(stack, self._setup_points())
                self._grid_vao = self._acquire(stack, self._setup_grid())
                self._axes_vao = self._acquire(stack, self._setup_axes())

                code = glGetError()
                if code != GL_NO_ERROR:
                    logger.error("OpenGL error during initialization: %s", gl_error_string(code))

                self._resources = stack.pop_all()
        except ViewerSetupError:
            raise
        except GLError as e:
            raise ViewerSetupError(
                f"OpenGL setup failed: {gl_error_string(getattr(e, 'err', None))}") from e

        logger.info("Renderer initialized (OpenGL %s)", _decode_log(glGetString(GL_VERSION)))

    @staticmethod
    def _acquire(stack: ExitStack, resource):
        stack.callback(resource.release)
        return resource

    def _setup_points(self) -> VertexArray:
        vao = VertexArray("points")
        vao.add_buffer(None, [(0, 3, 3, 0)], GL_DYNAMIC_DRAW)   # positions
        vao.add_buffer(None, [(1, 3, 3, 0)], GL_DYNAMIC_DRAW)   # colors
        return vao

    def _setup_grid(self) -> VertexArray:
        vertices = build_grid_vertices(self.config.grid_size, self.config.grid_step)
        self._grid_vertex_count = len(vertices)
        vao = VertexArray("grid")
        vao.add_buffer(vertices, [(0, 3, 3, 0)])
        logger.debug("Grid setup complete (%d vertices)", self._grid_vertex_count)
        return vao

    def _setup_axes(self) -> VertexArray:
        vertices = build_axes_vertices()
        self._axes_vertex_count = len(vertices)
        vao = VertexArray("axes")
        vao.add_buffer(vertices, [(0, 3, 6, 0), (1, 3, 6, 3)])
        return vao

    # -------------------------------------------------------------------------
    # Per-frame operations (raise GpuError)
    # -------------------------------------------------------------------------

    def set_viewport(self, width: int, height: int):
        with gpu_errors("viewport"):
            glViewport(0, 0, int(width), int(height))

    def upload(self, snapshot: CloudSnapshot):
        """Replace both point buffers with the snapshot content."""
        with gpu_errors("upload"):
            self._point_vao.replace_data(0, snapshot.positions)
            self._point_vao.replace_data(1, snapshot.colors)
        self.point_count = snapshot.count

    def begin_frame(self):
        with gpu_errors("clear"):
            glClearColor(*self.config.background_color)
            glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

    def draw_grid(self, mvp: np.ndarray):
        with gpu_errors("grid"):
            self._grid_program.use()
            self._grid_program.set_matrix("MVP", mvp)
            self._grid_vao.bind()
            glDrawArrays(GL_LINES, 0, self._grid_vertex_count)
            VertexArray.unbind()

    def draw_axes(self, mvp: np.ndarray):
        with gpu_errors("axes"):
            self._axes_program.use()
            self._axes_program.set_matrix("MVP", mvp)
            self._axes_vao.bind()
            glDrawArrays(GL_LINES, 0, self._axes_vertex_count)
            VertexArray.unbind()

    def draw_points(self, mvp: np.ndarray):
        if self.point_count == 0:
            return
        with gpu_errors("points"):
            self._point_program.use()
            self._point_program.set_matrix("MVP", mvp)
            self._point_program.set_float("pointSize", self.config.point_size)
            self._point_vao.bind()
            glDrawArrays(GL_POINTS, 0, self.point_count)
            VertexArray.unbind()

    # -------------------------------------------------------------------------
    # Lifetime
    # -------------------------------------------------------------------------

    def release(self):
        """Delete all GPU objects. Safe to call more than once."""
        if self._resources is None:
            return
        resources, self._resources = self._resources, None
        resources.close()
        self.point_count = 0
        logger.debug("GPU resources released")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
