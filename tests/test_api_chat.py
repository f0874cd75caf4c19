def _user_id(client, tokens, auth_header):
    return client.get("/users/me", headers=auth_header(tokens)).json()["id"]


def test_chat_over_http(client, register, auth_header):
    buyer = register()
    seller = register("farmer")
    seller_id = _user_id(client, seller, auth_header)

    started = client.post(
        "/chat/conversations",
        json={"recipientId": seller_id, "initialMessage": "Hello there"},
        headers=auth_header(buyer),
    )
    assert started.status_code == 200
    conversation = started.json()
    assert conversation["otherUserId"] == seller_id
    assert [m["content"] for m in conversation["messages"]] == ["Hello there"]

    reply = client.post(
        f"/chat/conversations/{conversation['id']}/messages",
        json={"content": "Hi! How can I help?"},
        headers=auth_header(seller),
    )
    assert reply.status_code == 201

    listing = client.get("/chat/conversations", headers=auth_header(seller)).json()
    assert [c["id"] for c in listing] == [conversation["id"]]
    assert listing[0]["unreadCount"] == 1
    assert listing[0]["lastMessage"] == "Hi! How can I help?"

    read = client.post(f"/chat/conversations/{conversation['id']}/read", headers=auth_header(seller))
    assert read.json() == {"conversationId": conversation["id"], "markedRead": 1}

    detail = client.get(f"/chat/conversations/{conversation['id']}", headers=auth_header(buyer)).json()
    assert [m["isRead"] for m in detail["messages"]] == [True, False]


def test_chat_access_rules(client, register, auth_header):
    buyer = register()
    seller = register("farmer")
    outsider = register()
    seller_id = _user_id(client, seller, auth_header)
    conversation = client.post(
        "/chat/conversations", json={"recipientId": seller_id}, headers=auth_header(buyer)
    ).json()

    path = f"/chat/conversations/{conversation['id']}"
    assert client.get(path, headers=auth_header(outsider)).status_code == 403
    assert client.post(f"{path}/read", headers=auth_header(outsider)).status_code == 403
    assert client.get("/chat/conversations/999", headers=auth_header(buyer)).status_code == 404
    assert client.post(f"{path}/messages", json={"content": ""}, headers=auth_header(buyer)).status_code == 400

    assert client.delete(path, headers=auth_header(buyer)).status_code == 204
    assert client.get("/chat/conversations", headers=auth_header(seller)).json() == []
