"""Graphics helpers: color quantization, source loading, naming and headers."""

from gbabuild.gfx.color import GbaColor, TRANSPARENT_KEY, quantize, quantize_array, convert_image, to_paletted
from gbabuild.gfx.naming import intermediate_name, intermediate_path, to_camel, to_pascal
from gbabuild.gfx.headers import (
    Declaration,
    animation_header_name,
    parse_declarations,
    synthesize_animation_header,
    synthesize_declaration_header,
)

__all__ = [
    'GbaColor',
    'TRANSPARENT_KEY',
    'quantize',
    'quantize_array',
    'convert_image',
    'to_paletted',
    'intermediate_name',
    'intermediate_path',
    'to_camel',
    'to_pascal',
    'Declaration',
    'animation_header_name',
    'parse_declarations',
    'synthesize_animation_header',
    'synthesize_declaration_header',
]
