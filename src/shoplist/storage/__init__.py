"""Storage package for ShopList: format detection, codecs and file I/O."""
from .detector import detect
from .codecs import CODECS, Codec, parse, serialize
from .files import read_list_file, write_atomic

__all__ = ['detect', 'CODECS', 'Codec', 'parse', 'serialize', 'read_list_file', 'write_atomic']
