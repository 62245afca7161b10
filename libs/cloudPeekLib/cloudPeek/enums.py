from enum import Enum


class RenderState(Enum):
    """Render loop states, visited in this order every frame"""
    RUNNING = "running"
    PROCESS_INPUT = "process_input"
    SYNC_DATA = "sync_data"
    DRAW = "draw"
    PRESENT = "present"
    STOPPED = "stopped"


class Key(Enum):
    """Keys the viewer reacts to, independent of the window toolkit"""
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    A = "a"
    D = "d"
    W = "w"
    S = "s"

    # Grid rotation
    Q = "q"   # +Y
    E = "e"   # -Y
    Z = "z"   # +X
    X = "x"   # -X
    C = "c"   # +Z
    V = "v"   # -Z

    F1 = "f1"          # toggle cursor capture
    R = "r"            # reset camera
    P = "p"            # toggle point cloud rendering
    DELETE = "delete"  # clear all points
    ESCAPE = "escape"  # close viewer


class MouseButton(Enum):
    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"


# Held-key pan directions (x, y) in world units
PAN_KEYS = {
    Key.LEFT: (-1.0, 0.0), Key.A: (-1.0, 0.0),
    Key.RIGHT: (1.0, 0.0), Key.D: (1.0, 0.0),
    Key.UP: (0.0, 1.0), Key.W: (0.0, 1.0),
    Key.DOWN: (0.0, -1.0), Key.S: (0.0, -1.0),
}

# Held-key grid rotation: key -> (axis index, sign); axis 0=X, 1=Y, 2=Z
GRID_ROTATION_KEYS = {
    Key.Z: (0, 1.0), Key.X: (0, -1.0),
    Key.Q: (1, 1.0), Key.E: (1, -1.0),
    Key.C: (2, 1.0), Key.V: (2, -1.0),
}
