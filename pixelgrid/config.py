"""
Runtime configuration for the pixel grid animation service.

Frame geometry is fixed; everything else can be overridden from the
environment (or a .env file).
"""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Frame geometry
IMAGE_PIXEL_LENGTH = 16
FRAME_PIXEL_COUNT = IMAGE_PIXEL_LENGTH**2
CHANNELS_PER_PIXEL = 3  # R, G, B
FRAME_BYTE_LENGTH = FRAME_PIXEL_COUNT * CHANNELS_PER_PIXEL

# Frame identifiers, shared by the server and the client helpers
FRAME_ID_LENGTH = int(os.getenv("FRAME_ID_LENGTH", "6"))

# repeatCount value that means "loop forever"
REPEAT_FOREVER = int(os.getenv("REPEAT_FOREVER", "0"))

# Write seed animations when the store is empty at startup
SEED_ON_EMPTY = os.getenv("SEED_ON_EMPTY", "true").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Upper bounds for animation timing; both fit a signed 32-bit column
MAX_FRAME_DURATION = 2**31 - 1
MAX_REPEAT_COUNT = 2**31 - 1

# Largest multipart "metadata" field accepted by POST /data. A dense wire
# frame spells each channel as text, so allow 16 bytes per frame byte.
MAX_UPLOAD_FRAMES = int(os.getenv("MAX_UPLOAD_FRAMES", "10000"))
MAX_METADATA_BYTES = MAX_UPLOAD_FRAMES * FRAME_BYTE_LENGTH * 16
