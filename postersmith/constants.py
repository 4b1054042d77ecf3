MAX_DIMENSION = 10000
MIN_DIMENSION = 1

MIN_GRADIENT_STOPS = 2
MAX_GRADIENT_STOPS = 4

MAX_BORDER_WIDTH = 200
MAX_BLUR = 100

MIN_FONT_SIZE = 1
MAX_FONT_SIZE = 500
MAX_LETTER_SPACING = 100
MAX_STROKE_WIDTH = 50

# average glyph advance as a fraction of the font size, used by auto-fit
AVG_CHAR_WIDTH_RATIO = 0.6

NAMED_POSITIONS = (
    "center",
    "top-center",
    "bottom-center",
    "left-center",
    "right-center",
)
GRADIENT_DIRECTIONS = ("to-bottom", "to-right", "to-bottom-right", "radial")
MASK_TYPES = ("none", "circle", "rounded-rect")
BACKGROUND_TYPES = ("solid", "gradient", "image")
TEXT_ALIGNS = ("left", "center", "right")
TEXT_TRANSFORMS = ("none", "uppercase", "lowercase", "capitalize")

OUTPUT_FORMATS = ("png", "jpeg")
RESIZE_FITS = ("contain", "cover", "fill")
DEFAULT_JPEG_QUALITY = 85

FONT_FILE_SUFFIXES = {".ttf", ".otf", ".ttc", ".otc"}
DEFAULT_FONT = "sans-serif"
