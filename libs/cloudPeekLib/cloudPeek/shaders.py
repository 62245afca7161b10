"""GLSL sources for the three render passes (OpenGL 3.3 core)."""

POINT_VERTEX_SHADER = """
#version 330 core
layout(location = 0) in vec3 aPos;
layout(location = 1) in vec3 aColor;

uniform mat4 MVP;
uniform float pointSize;

out vec3 ourColor;

void main(){
    gl_Position = MVP * vec4(aPos, 1.0);
    ourColor = aColor;
    gl_PointSize = pointSize;
}
"""

POINT_FRAGMENT_SHADER = """
#version 330 core
in vec3 ourColor;
out vec4 FragColor;

void main(){
    FragColor = vec4(ourColor, 1.0);
}
"""

GRID_VERTEX_SHADER = """
#version 330 core
layout(location = 0) in vec3 aPos;

uniform mat4 MVP;

void main(){
    gl_Position = MVP * vec4(aPos, 1.0);
}
"""

GRID_FRAGMENT_SHADER = """
#version 330 core
out vec4 FragColor;

void main(){
    FragColor = vec4(0.5, 0.5, 0.5, 1.0);
}
"""

AXES_VERTEX_SHADER = """
#version 330 core
layout(location = 0) in vec3 aPos;
layout(location = 1) in vec3 aColor;

uniform mat4 MVP;

out vec3 ourColor;

void main(){
    gl_Position = MVP * vec4(aPos, 1.0);
    ourColor = aColor;
}
"""

AXES_FRAGMENT_SHADER = POINT_FRAGMENT_SHADER
