from setuptools import setup

setup(
    name="cloudPeek",
    version="0.1.0",
    description="Streaming 3D point cloud viewer with orbit camera (PyQt5 + OpenGL 3.3).",
    author="Max Rheiner",
    author_email="max.rheiner@zhdk.ch",
    # Explicitly specify the package
    packages=["cloudPeek"],
    # Tell setuptools where to find it
    package_dir={"cloudPeek": "libs/cloudPeekLib/cloudPeek"},
    include_package_data=True,
    install_requires=[
        "numpy",
        "PyQt5",
        "PyOpenGL",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.7",
)
