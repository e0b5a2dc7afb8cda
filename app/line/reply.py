# -*- coding: utf-8 -*-
"""
LINE reply sender

Sends one text reply per reply token through the Messaging API (v3 SDK).
Delivery is attempted once; failures are logged and reported as False.
"""

import logging
from typing import Optional

from linebot.v3.messaging import (
    ApiClient,
    Configuration,
    MessagingApi,
    ReplyMessageRequest,
    TextMessage,
)

logger = logging.getLogger(__name__)

# LINE text message limit
MAX_TEXT_LENGTH = 5000


def truncate_reply(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length]


class LineReplier:
    """Thin wrapper around MessagingApi.reply_message."""

    def __init__(self, access_token: str, max_length: int = MAX_TEXT_LENGTH,
                 messaging_api: Optional[MessagingApi] = None):
        self.max_length = max_length
        self._access_token = access_token
        self._messaging_api = messaging_api

    def _get_messaging_api(self) -> MessagingApi:
        """Get or initialize Messaging API client (lazy initialization)"""
        if self._messaging_api is None:
            logger.info("Initializing MessagingApi")
            configuration = Configuration(access_token=self._access_token)
            self._messaging_api = MessagingApi(ApiClient(configuration))
        return self._messaging_api

    def reply_text(self, reply_token: str, text: str) -> bool:
        """
        Reply to a LINE event with a single text message.

        Returns:
            bool: True if LINE accepted the reply, False otherwise
        """
        text = truncate_reply(text, self.max_length)
        try:
            self._get_messaging_api().reply_message(
                ReplyMessageRequest(
                    reply_token=reply_token,
                    messages=[TextMessage(text=text)],
                )
            )
            logger.info("Reply sent successfully")
            return True
        except Exception as e:
            logger.error(f"Failed to send LINE reply: {e}")
            return False
