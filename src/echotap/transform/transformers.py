"""
echotap Response Transformers

The two transformers a stub can opt into:
- ``body-transformer``: ``$(path)`` placeholders and ``$(!RandomInteger)``
- ``template-body-transformer``: Jinja2 templates with headers, session,
  counter, ``utils`` and ``http`` helpers

Both leave a response without a body untouched and never apply globally.
"""

from typing import Any, Dict, Optional

from .context import TemplateContextBuilder, TemplateRenderer, TemplateUtils
from .interpolator import PlaceholderInterpolator
from .models import IncomingRequest, ResponseDefinition, ResponseTransformer
from .request_map import RequestMapBuilder
from .state import SessionStore, Counter
from .webhook import OutboundClient


class BodyTransformer(ResponseTransformer):
    """
    Placeholder-mode transformer.

    Example stub body:
        {"var": $(var), "type": "$(var.type)", "first": $(numbers[0])}
    """

    name = 'body-transformer'

    def __init__(
        self,
        request_map_builder: Optional[RequestMapBuilder] = None,
        interpolator: Optional[PlaceholderInterpolator] = None
    ):
        self.request_map_builder = request_map_builder or RequestMapBuilder()
        self.interpolator = interpolator or PlaceholderInterpolator()

    def transform(
        self,
        request: IncomingRequest,
        response: ResponseDefinition,
        parameters: Optional[Dict[str, Any]] = None
    ) -> ResponseDefinition:
        if response.has_empty_body():
            return response

        request_map = self.request_map_builder.build(request, parameters)
        return response.with_body(self.interpolator.render(response.body, request_map))


class TemplateBodyTransformer(ResponseTransformer):
    """
    Richer-mode transformer.

    Session, counter, utils and webhook client should be the host's
    process-wide instances; fresh ones are created when omitted.

    Example stub body:
        {"id": "[( utils.uuid() )]", "seq": [( counter.increment_and_get() )]}
    """

    name = 'template-body-transformer'

    def __init__(
        self,
        session: Optional[SessionStore] = None,
        counter: Optional[Counter] = None,
        utils: Optional[TemplateUtils] = None,
        http: Optional[OutboundClient] = None,
        request_map_builder: Optional[RequestMapBuilder] = None,
        renderer: Optional[TemplateRenderer] = None
    ):
        self.context_builder = TemplateContextBuilder(
            session=session if session is not None else SessionStore(),
            counter=counter if counter is not None else Counter(),
            utils=utils if utils is not None else TemplateUtils(),
            http=http if http is not None else OutboundClient()
        )
        self.request_map_builder = request_map_builder or RequestMapBuilder()
        self.renderer = renderer or TemplateRenderer()

    def transform(
        self,
        request: IncomingRequest,
        response: ResponseDefinition,
        parameters: Optional[Dict[str, Any]] = None
    ) -> ResponseDefinition:
        if response.has_empty_body():
            return response

        request_map = self.request_map_builder.build(request, parameters)
        context = self.context_builder.build_context(request_map, request.headers)
        return response.with_body(self.renderer.render(response.body, context))
