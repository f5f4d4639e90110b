from .constants import *
from .formatters import format_duration_human, mask_secret, sanitize_filename
