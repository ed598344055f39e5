"""usbssh - SSH server over USB ethernet, started and stopped on demand."""

__version__ = "0.1.0"
