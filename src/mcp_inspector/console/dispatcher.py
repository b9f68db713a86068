"""Turns observer frames into actions and reports the outcome as events.

Malformed and invalid frames are answered to the sender only. Remote action
outcomes, success or failure, are broadcast to every observer. Any other
exception is caught here and reported to the sender as a generic error.
"""

import asyncio
from typing import Set, Union

from . import events
from .actions import ClientActions
from .commands import (
    CommandParseError,
    CommandValidationError,
    GetClientsCommand,
    GetMessageHistoryCommand,
    RequestElicitationCommand,
    RequestSamplingCommand,
    TriggerNotificationCommand,
    parse_command,
)
from .hub import ObserverHub
from ..shared.logger import log_debug, log_error, log_warning
from ..storage.message_store import MessageStore

DEFAULT_DRAIN_TIMEOUT = 5.0


class CommandDispatcher:
    """Validates, routes, executes and reports observer commands."""

    def __init__(self, hub: ObserverHub, store: MessageStore, actions: ClientActions):
        self.hub = hub
        self.store = store
        self.actions = actions
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, connection_id: str, raw: Union[str, bytes]) -> asyncio.Task:
        """Handle a frame in its own task so slow actions do not stall the socket."""
        task = asyncio.create_task(self.handle(connection_id, raw))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float = DEFAULT_DRAIN_TIMEOUT):
        """Wait up to ``timeout`` seconds for submitted commands, then cancel the rest.

        Remote actions may never complete on their own.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            log_warning("Cancelling unfinished commands", component="dispatcher", count=len(pending))
            for task in pending:
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def handle(self, connection_id: str, raw: Union[str, bytes]):
        """Process one inbound observer frame to completion."""
        try:
            command = parse_command(raw)
        except CommandParseError as e:
            log_warning("Malformed console frame", component="dispatcher", connection_id=connection_id, error=str(e))
            await self.hub.send_to(connection_id, events.error("Malformed command", details=str(e)))
            return
        except CommandValidationError as e:
            log_warning("Invalid console command", component="dispatcher", connection_id=connection_id, problems=str(e))
            await self.hub.send_to(connection_id, events.error("Invalid command format", details=str(e)))
            return

        log_debug("Dispatching command", component="dispatcher", connection_id=connection_id, command=command.type)
        try:
            await self._route(connection_id, command)
        except Exception as e:
            log_error("Failed to process command", component="dispatcher", error=e,
                      connection_id=connection_id, command=command.type)
            await self.hub.send_to(connection_id, events.error("Failed to process command", cause=e))

    async def _route(self, connection_id: str, command):
        if isinstance(command, TriggerNotificationCommand):
            await self._trigger_notification(command)
        elif isinstance(command, RequestSamplingCommand):
            await self._request_sampling(command)
        elif isinstance(command, RequestElicitationCommand):
            await self._request_elicitation(command)
        elif isinstance(command, GetClientsCommand):
            await self._get_clients(connection_id)
        elif isinstance(command, GetMessageHistoryCommand):
            await self._get_message_history(connection_id, command)
        else:
            await self.hub.send_to(connection_id, events.error(f"Unknown command type: {command.type}"))

    async def _trigger_notification(self, command: TriggerNotificationCommand):
        params = command.payload
        try:
            await self.actions.send_notification(params, params.session_id)
        except Exception as e:
            log_error("Failed to send notification", component="dispatcher", error=e, session_id=params.session_id)
            await self.hub.broadcast(events.notification_error(e))
            return
        await self.hub.broadcast(events.notification_sent(params))

    async def _request_sampling(self, command: RequestSamplingCommand):
        request = command.payload
        try:
            result = await self.actions.create_message(request, request.session_id)
        except Exception as e:
            log_error("Sampling request failed", component="dispatcher", error=e, session_id=request.session_id)
            await self.hub.broadcast(events.sampling_error(e))
            return
        await self.hub.broadcast(events.sampling_response(result))

    async def _request_elicitation(self, command: RequestElicitationCommand):
        request = command.payload
        try:
            result = await self.actions.elicit_input(request, request.session_id)
        except Exception as e:
            log_error("Elicitation request failed", component="dispatcher", error=e, session_id=request.session_id)
            await self.hub.broadcast(events.elicitation_error(e))
            return
        await self.hub.broadcast(events.elicitation_response(result))

    async def _get_clients(self, connection_id: str):
        sessions = await self.actions.get_sessions()
        await self.hub.send_to(connection_id, events.client_list(sessions))

    async def _get_message_history(self, connection_id: str, command: GetMessageHistoryCommand):
        request = command.payload
        messages = await self.store.get_messages(request.session_id, request.limit)
        total = await self.store.count_messages(request.session_id)
        await self.hub.send_to(
            connection_id,
            events.message_history(request.session_id, messages, has_more=total > len(messages)),
        )

    async def broadcast_client_list(self):
        """Push the current session list to every observer."""
        sessions = await self.actions.get_sessions()
        await self.hub.broadcast(events.client_list(sessions))
