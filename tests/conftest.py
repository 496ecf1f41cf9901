import os

# Qt needs a platform plugin even though nothing is shown
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
