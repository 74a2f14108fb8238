"""
echotap

Dynamic response bodies for HTTP mock servers: request bodies (JSON, XML,
form data or query strings) are normalized into a tree and used to fill
``$(path)`` placeholders or Jinja2 templates in stub responses.
"""

__version__ = '1.0.0'
