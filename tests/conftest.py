import os
import sys
import tempfile

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# log files of the app module go to a temp dir
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="ragchat-tests-"))
