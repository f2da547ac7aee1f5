import json

import httpx

from cosmic_mind.services.notification_channel import TelegramChannel


def make_channel(handler, token="123:abc"):
    client = httpx.AsyncClient(base_url="https://api.telegram.org", transport=httpx.MockTransport(handler))
    return TelegramChannel(token=token, client=client)


async def test_send_posts_markdown_message():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    channel = make_channel(handler)
    result = await channel.send("42", "*Reminder:* hi")
    await channel.aclose()

    assert result.ok
    assert seen == [("/bot123:abc/sendMessage", {"chat_id": "42", "text": "*Reminder:* hi", "parse_mode": "Markdown"})]


async def test_markdown_rejection_falls_back_to_plain_text():
    payloads = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        payloads.append(body)
        if "parse_mode" in body:
            return httpx.Response(400, json={"ok": False, "description": "Bad Request: can't parse entities: Can't find end of the entity"})
        return httpx.Response(200, json={"ok": True})

    channel = make_channel(handler)
    result = await channel.send("42", "*Reminder:* my_file")
    await channel.aclose()

    assert result.ok
    assert len(payloads) == 2
    assert payloads[1] == {"chat_id": "42", "text": "Reminder: myfile"}


async def test_rejected_chat_returns_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})

    channel = make_channel(handler)
    result = await channel.send("unknown", "hello")
    await channel.aclose()

    assert not result.ok
    assert result.error == "Bad Request: chat not found"


async def test_transport_error_returns_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    channel = make_channel(handler)
    result = await channel.send("42", "hello")
    await channel.aclose()

    assert not result.ok
    assert "connection refused" in result.error


async def test_unconfigured_bot_fails_without_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    channel = make_channel(handler, token="")
    result = await channel.send("42", "hello")
    await channel.aclose()

    assert not result.ok
    assert not channel.enabled
