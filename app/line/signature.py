# -*- coding: utf-8 -*-
"""
LINE webhook signature verification

Checks X-Line-Signature with the SDK's SignatureValidator against the
request body exactly as received; never re-serialize before checking.
"""

from typing import Union

from linebot.v3 import SignatureValidator
from linebot.v3.exceptions import InvalidSignatureError


def verify_signature(secret: str, raw_body: Union[str, bytes], signature: str) -> None:
    """
    Validate a provided X-Line-Signature against the raw body.

    Callers must reject a missing secret or signature themselves (HTTP 401)
    instead of passing empty values here.

    Raises:
        InvalidSignatureError: signature does not match, or the body is not UTF-8
    """
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode('utf-8')
        except UnicodeDecodeError:
            raise InvalidSignatureError('Request body is not UTF-8')

    if not SignatureValidator(secret).validate(raw_body, signature):
        raise InvalidSignatureError('Invalid signature. signature=' + signature)
