import os
import sys

# Add library to path - same layout the client scripts use
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
libs_path = os.path.join(repo_root, 'libs', 'cloudPeekLib')
if libs_path not in sys.path:
    sys.path.insert(0, libs_path)
