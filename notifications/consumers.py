import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .apps import get_registry

logger = logging.getLogger(__name__)

UNAUTHORIZED_CLOSE_CODE = 4401


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    Push channel for task notifications.

    The client announces its user with ``{"type": "user_login", "user_id": N}``;
    from then on every notification for that user reaches this socket.
    ``user_logout`` or closing the socket stops delivery.
    """

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated:
            await self.close(code=UNAUTHORIZED_CLOSE_CODE)
            return
        self.user_id = None
        await self.accept()

    async def receive_json(self, content, **kwargs):
        message_type = content.get('type') if isinstance(content, dict) else None

        if message_type == 'user_login':
            await self._login(content.get('user_id'))
        elif message_type == 'user_logout':
            get_registry().leave(self.channel_name)
            self.user_id = None
            await self.send_json({'type': 'disconnected'})
        else:
            await self.send_json({'type': 'error', 'message': f'Unknown message type: {message_type}'})

    async def _login(self, user_id):
        scope_user = self.scope['user']
        if user_id is None:
            user_id = scope_user.id
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            await self.send_json({'type': 'error', 'message': 'user_id must be an integer'})
            return

        if user_id != scope_user.id:
            logger.warning(f"Session {self.channel_name} of user {scope_user.id} tried to join as {user_id}")
            await self.send_json({'type': 'error', 'message': 'user_id does not match the authenticated user'})
            return

        get_registry().join(user_id, self.channel_name)
        self.user_id = user_id
        await self.send_json({'type': 'connected', 'message': 'You are connected to the notification system'})

    async def disconnect(self, code):
        registry = get_registry()
        if registry is not None:
            registry.leave(self.channel_name)

    async def task_notification(self, event):
        await self.send_json(event['notification'])
