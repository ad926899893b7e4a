# WhisperClip - Click-to-Dictate Speech-to-Text

"""
Desktop dictation widget that records from the microphone, transcribes
through a remote API or an on-device whisper.cpp model, and copies the
text to the clipboard.
"""

__version__ = "0.1.0"
__app_name__ = "WhisperClip"
