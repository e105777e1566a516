# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Composable MCP server: capability registry, dispatcher, and transports."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from .dispatcher import MethodDispatcher, wrap_user_handler
from .notifications import NotificationEmitter, NotificationFlags
from .registry import CapabilityKind, CapabilityRegistry
from .services import LifecycleService, PromptsService, ResourcesService, ServerInfo, ToolsService
from .transports import StdioTransport, StreamableHTTPTransport
from .transports.base import BaseTransport, TransportFactory
from .adapters import normalize_resource_payload
from ..configuration import Configuration
from ..context import Context, PeerState
from ..exceptions import InvalidParamsError
from ..prompt import PromptSpec, build_prompt_spec
from ..prompt import reset_active_server as reset_prompt_server
from ..prompt import set_active_server as set_prompt_server
from ..resource import ResourceSpec
from ..resource import reset_active_server as reset_resource_server
from ..resource import set_active_server as set_resource_server
from ..resource_template import ResourceTemplateSpec
from ..resource_template import reset_active_server as reset_resource_template_server
from ..resource_template import set_active_server as set_resource_template_server
from ..tool import ToolAnnotations, ToolSpec, build_tool_spec
from ..tool import reset_active_server as reset_tool_server
from ..tool import set_active_server as set_tool_server
from ..utils import get_logger


F = TypeVar("F", bound=Callable[..., Any])


class MCPServer:
    """MCP server surface for applications.

    Definitions can be passed to the constructor, registered later through the
    ``register_*`` methods, or declared with the module-level decorators inside
    :meth:`binding`.  Mutations made after construction emit the matching
    ``list_changed`` notification when a transport is attached.
    """

    def __init__(
        self,
        name: str,
        *,
        version: str = "0.1.0",
        title: str | None = None,
        description: str | None = None,
        website_url: str | None = None,
        instructions: str | None = None,
        icons: Iterable[Any] | None = None,
        tools: Iterable[ToolSpec | Callable[..., Any]] = (),
        prompts: Iterable[PromptSpec | Callable[..., Any]] = (),
        resources: Iterable[ResourceSpec | Callable[..., Any]] = (),
        resource_templates: Iterable[ResourceTemplateSpec | Callable[..., Any]] = (),
        server_context: Any = None,
        configuration: Configuration | None = None,
        notification_flags: NotificationFlags | None = None,
        transport: str | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.configuration = configuration or Configuration()
        self.server_context = server_context
        self._default_transport = transport.lower() if transport else "stdio"
        self._logger = get_logger(f"plainmcp.server.{name}")

        self._notifications = NotificationEmitter(notification_flags)
        self._registry = CapabilityRegistry()
        self._dispatcher = MethodDispatcher(
            configuration=self.configuration, server_context=server_context, emitter=self._notifications
        )
        self._local_peer = PeerState()

        self.lifecycle = LifecycleService(
            info=ServerInfo(
                name=name,
                version=version,
                title=title,
                description=description,
                website_url=website_url,
                icons=list(icons) if icons is not None else None,
                instructions=instructions,
            ),
            configuration=self.configuration,
            flags=self._notifications.flags,
        )
        self.tools = ToolsService(registry=self._registry, configuration=self.configuration)
        self.prompts = PromptsService(registry=self._registry, configuration=self.configuration)
        self.resources = ResourcesService(registry=self._registry, configuration=self.configuration)

        self._install_builtins()

        for target in tools:
            self.tools.register(target)
        for target in prompts:
            self.prompts.register(target)
        for target in resources:
            self.resources.register_resource(target)
        for target in resource_templates:
            self.resources.register_template(target)

        # Attached last so construction-time registration stays silent.
        self._registry.add_listener(self._on_registry_change)

        self._transport_factories: dict[str, TransportFactory] = {}
        self.register_transport("stdio", StdioTransport)
        self.register_transport(
            "streamable-http", StreamableHTTPTransport, aliases=("streamable_http", "shttp", "http")
        )

    # //////////////////////////////////////////////////////////////////
    # Built-in methods
    # //////////////////////////////////////////////////////////////////

    def _install_builtins(self) -> None:
        install = self._dispatcher.install_builtin
        install("initialize", self.lifecycle.initialize)
        install("ping", self.lifecycle.ping)
        install("tools/list", self.tools.list_tools)
        install("tools/call", self.tools.call_tool)
        install("prompts/list", self.prompts.list_prompts)
        install("prompts/get", self.prompts.get_prompt)
        install("resources/list", self.resources.list_resources)
        install("resources/read", self.resources.read)
        install("resources/templates/list", self.resources.list_templates)
        install("notifications/initialized", self.lifecycle.initialized, notification=True)
        install("notifications/cancelled", self.lifecycle.cancelled, notification=True)
        install("notifications/roots/list_changed", self.lifecycle.client_list_changed, notification=True)
        install("notifications/tools/list_changed", self.lifecycle.client_list_changed, notification=True)
        install("notifications/prompts/list_changed", self.lifecycle.client_list_changed, notification=True)
        install("notifications/resources/list_changed", self.lifecycle.client_list_changed, notification=True)

    def _on_registry_change(self, kind: CapabilityKind, key: str, operation: str) -> None:
        self._notifications.list_changed(kind)

    @property
    def dispatcher(self) -> MethodDispatcher:
        return self._dispatcher

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def notification_flags(self) -> NotificationFlags:
        return self._notifications.flags

    # //////////////////////////////////////////////////////////////////
    # Capabilities
    # //////////////////////////////////////////////////////////////////

    @property
    def tool_names(self) -> list[str]:
        return self.tools.names

    @property
    def prompt_names(self) -> list[str]:
        return self.prompts.names

    @property
    def resource_uris(self) -> list[str]:
        return self.resources.uris

    @property
    def resource_template_uris(self) -> list[str]:
        return self.resources.uri_templates

    def register_tool(self, target: ToolSpec | Callable[..., Any], *, replace: bool = False) -> ToolSpec:
        return self.tools.register(target, replace=replace)

    def unregister_tool(self, name: str) -> ToolSpec:
        return self.tools.unregister(name)

    def register_prompt(self, target: PromptSpec | Callable[..., Any], *, replace: bool = False) -> PromptSpec:
        return self.prompts.register(target, replace=replace)

    def unregister_prompt(self, name: str) -> PromptSpec:
        return self.prompts.unregister(name)

    def register_resource(self, target: ResourceSpec | Callable[..., Any], *, replace: bool = False) -> ResourceSpec:
        return self.resources.register_resource(target, replace=replace)

    def unregister_resource(self, uri: str) -> ResourceSpec:
        return self.resources.unregister_resource(uri)

    def register_resource_template(
        self, target: ResourceTemplateSpec | Callable[..., Any], *, replace: bool = False
    ) -> ResourceTemplateSpec:
        return self.resources.register_template(target, replace=replace)

    def unregister_resource_template(self, uri_template: str) -> ResourceTemplateSpec:
        return self.resources.unregister_template(uri_template)

    def define_tool(
        self,
        name: str | None = None,
        *,
        description: str | None = None,
        title: str | None = None,
        input_schema: Mapping[str, Any] | None = None,
        output_schema: Mapping[str, Any] | None = None,
        annotations: ToolAnnotations | Mapping[str, Any] | None = None,
        icons: Iterable[Any] | None = None,
        meta: Mapping[str, Any] | None = None,
        replace: bool = False,
    ) -> Callable[[F], F]:
        """Decorator that builds a tool from *fn* and registers it right away."""

        def decorator(fn: F) -> F:
            spec = build_tool_spec(
                fn,
                name=name,
                description=description,
                title=title,
                input_schema=input_schema,
                output_schema=output_schema,
                annotations=annotations,
                icons=icons,
                meta=meta,
            )
            self.tools.register(spec, replace=replace)
            return fn

        return decorator

    def define_prompt(
        self,
        name: str | None = None,
        *,
        description: str | None = None,
        title: str | None = None,
        arguments: Iterable[Any] | None = None,
        icons: Iterable[Any] | None = None,
        meta: Mapping[str, Any] | None = None,
        replace: bool = False,
    ) -> Callable[[F], F]:
        def decorator(fn: F) -> F:
            spec = build_prompt_spec(
                fn, name=name, description=description, title=title, arguments=arguments, icons=icons, meta=meta
            )
            self.prompts.register(spec, replace=replace)
            return fn

        return decorator

    # //////////////////////////////////////////////////////////////////
    # Binding context
    # //////////////////////////////////////////////////////////////////

    @contextmanager
    def binding(self) -> Iterator[MCPServer]:
        tool_token = set_tool_server(self)
        prompt_token = set_prompt_server(self)
        resource_token = set_resource_server(self)
        template_token = set_resource_template_server(self)
        try:
            yield self
        finally:
            reset_tool_server(tool_token)
            reset_prompt_server(prompt_token)
            reset_resource_server(resource_token)
            reset_resource_template_server(template_token)

    # //////////////////////////////////////////////////////////////////
    # Method hooks
    # //////////////////////////////////////////////////////////////////

    def define_custom_method(
        self, name: str, handler: Callable[..., Any] | None = None, *, notification: bool = False
    ) -> Any:
        """Route *name* to ``handler(params[, server_context=...])``.

        Usable directly or as a decorator::

            @server.define_custom_method("add")
            def add(params):
                return {"sum": params["a"] + params["b"]}
        """
        if handler is None:

            def decorator(fn: F) -> F:
                self._dispatcher.define_method(name, fn, notification=notification)
                return fn

            return decorator

        self._dispatcher.define_method(name, handler, notification=notification)
        return handler

    def remove_custom_method(self, name: str) -> None:
        self._dispatcher.remove_method(name)

    def override_handler(self, method: str, handler: Callable[..., Any]) -> None:
        """Replace a built-in method with ``handler(params[, server_context=...])``."""
        self._dispatcher.override(method, handler)

    def resources_read_handler(self, fn: F) -> F:
        """Serve ``resources/read`` from *fn*; usable as a decorator.

        The return value is normalised like a resource callable's, using the
        registered MIME type for the URI when there is one.
        """
        user_handler = wrap_user_handler(fn)

        def handler(params: dict[str, Any], context: Context) -> dict[str, Any]:
            uri = params.get("uri")
            if not isinstance(uri, str) or not uri:
                raise InvalidParamsError("Invalid params: 'uri' must be a non-empty string")
            payload = user_handler(params, context)
            spec: ResourceSpec | None = self._registry.find(CapabilityKind.RESOURCE, uri)
            result = normalize_resource_payload(uri, spec.mime_type if spec is not None else None, payload)
            return result.model_dump(by_alias=True, mode="json", exclude_none=True)

        self._dispatcher.override("resources/read", handler, wrap=False)
        return fn

    # //////////////////////////////////////////////////////////////////
    # Message entry points
    # //////////////////////////////////////////////////////////////////

    def handle(self, message: Any, *, peer: PeerState | None = None) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Dispatch one decoded message or batch; ``None`` means no reply."""
        return self._dispatcher.dispatch(message, peer or self._local_peer)

    def handle_json(self, raw: str | bytes, *, peer: PeerState | None = None) -> str | None:
        return self._dispatcher.dispatch_raw(raw, peer or self._local_peer)

    # //////////////////////////////////////////////////////////////////
    # Notifications
    # //////////////////////////////////////////////////////////////////

    @property
    def transport(self) -> BaseTransport | None:
        return self._notifications.transport

    def attach_transport(self, transport: BaseTransport) -> None:
        self._notifications.attach(transport)
        self._logger.debug("Attached %s transport", transport.transport_display_name)

    def detach_transport(self, transport: BaseTransport | None = None) -> None:
        self._notifications.detach(transport)

    def notify_tools_list_changed(self) -> bool:
        return self._notifications.list_changed(CapabilityKind.TOOL)

    def notify_prompts_list_changed(self) -> bool:
        return self._notifications.list_changed(CapabilityKind.PROMPT)

    def notify_resources_list_changed(self) -> bool:
        return self._notifications.list_changed(CapabilityKind.RESOURCE)

    def notify(self, method: str, params: Mapping[str, Any] | None = None, *, session_id: str | None = None) -> bool:
        return self._notifications.send(method, params, session_id=session_id)

    # //////////////////////////////////////////////////////////////////
    # Transport registry
    # //////////////////////////////////////////////////////////////////

    def register_transport(self, name: str, factory: TransportFactory, *, aliases: Iterable[str] | None = None) -> None:
        canonical = name.lower()
        self._transport_factories[canonical] = factory
        for alias in aliases or ():
            self._transport_factories[alias.lower()] = factory

    def create_transport(self, name: str, **options: Any) -> BaseTransport:
        factory = self._transport_factories.get(name.lower())
        if factory is None:
            raise ValueError(f"Unsupported transport '{name}'.")
        transport = factory(self, **options)
        if not isinstance(transport, BaseTransport):
            raise TypeError("Transport factory must return a BaseTransport instance")
        return transport

    # //////////////////////////////////////////////////////////////////
    # Transport helpers
    # //////////////////////////////////////////////////////////////////

    def serve(self, transport: str | None = None, **options: Any) -> None:
        """Block serving on *transport* (default: the constructor's choice)."""
        selected = (transport or self._default_transport).lower()
        instance = self.create_transport(selected, **options)
        self._logger.info("Serving %s via %s", self.name, instance.transport_display_name)
        instance.open()

    def serve_stdio(self, **options: Any) -> None:
        self.serve("stdio", **options)

    def serve_streamable_http(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        path: str = "/mcp",
        *,
        stateless: bool = False,
        log_level: str = "info",
        **options: Any,
    ) -> None:
        transport = self.create_transport(
            "streamable-http", host=host, port=port, path=path, stateless=stateless, log_level=log_level, **options
        )
        mode = " (stateless)" if stateless else ""
        self._logger.info("Serving %s via Streamable HTTP%s at %s", self.name, mode, transport.url)
        transport.open()


__all__ = ["MCPServer"]
