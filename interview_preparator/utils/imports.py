"""
Utilities for keeping native audio libraries quiet.
"""
import functools
import os
import threading


# PortAudio probes JACK and ALSA on startup and prints a wall of warnings
os.environ.setdefault("JACK_NO_START_SERVER", "1")

# Suppress Google Cloud warnings
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GLOG_minloglevel", "2")

# fd 2 is process-wide; redirects from different threads must not interleave
_redirect_lock = threading.RLock()


def with_suppressed_audio_warnings(func):
    """
    Decorator that silences native audio warnings during a function call.
    This temporarily redirects stderr at the file descriptor level, so keep
    decorated calls short.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with _redirect_lock:
            try:
                original_stderr_fd = os.dup(2)
                null_fd = os.open(os.devnull, os.O_WRONLY)
                os.dup2(null_fd, 2)
                os.close(null_fd)
            except OSError:
                original_stderr_fd = None

            try:
                return func(*args, **kwargs)
            finally:
                if original_stderr_fd is not None:
                    os.dup2(original_stderr_fd, 2)
                    os.close(original_stderr_fd)

    return wrapper
