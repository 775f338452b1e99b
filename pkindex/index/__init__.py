from .encode import encode as encode, encode_sources as encode_sources, encode_uris as encode_uris
from .lookup import IndexReader as IndexReader, lookup as lookup
