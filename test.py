"""
EDU4.AI CONSOLE CLIENT - Manual testing against a running server
================================================================

PURPOSE:
This is a command-line interface for talking to the Edu4.AI tutor without the
web frontend. It sends messages to POST /api/v1/chat, keeps one session id for
the conversation, and exposes the other endpoints as slash commands.

USAGE:
    python test.py

    Make sure the server is running first: python run.py

COMMANDS:
    /provider <name>  - Use openai, anthropic or google for the next messages
    /provider         - Go back to the server's default provider
    /providers        - List providers and whether they are configured
    /validate <text>  - Run the safety check on a message without sending it
    /history          - View the messages of the current session
    /clear            - Delete the current session on the server and start fresh
    /quit or /exit    - Exit
"""

import requests

try:
    from config import ASSISTANT_NAME, API_VERSION, PORT
except ImportError:
    ASSISTANT_NAME, API_VERSION, PORT = "Edu4.AI", "v1", 8000


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = f"http://localhost:{PORT}/api/{API_VERSION}"
# Set by the server on the first reply and sent back with every later message.
SESSION_ID = None
CURRENT_PROVIDER = None  # None means the server's default provider


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    print("\n" + "=" * 60)
    print(f"🎓 {ASSISTANT_NAME} - Console Tutor")
    print("=" * 60)
    print("\nCommands:")
    print("  /provider <name> - Use openai, anthropic or google")
    print("  /providers - List providers")
    print("  /validate <text> - Check a message without sending it")
    print("  /history - See chat history")
    print("  /clear - Delete this session and start fresh")
    print("  /quit - Exit")
    print("=" * 60 + "\n")


def get_user_input():
    try:
        return input("\nYou: ").strip()
    except (KeyboardInterrupt, EOFError):
        return None


def _error_message(response) -> str:
    """Pull the server's message out of an error envelope, falling back to the raw text."""
    try:
        body = response.json()
    except ValueError:
        return f"❌ Error: {response.status_code} - {response.text}"
    text = f"❌ {body.get('message', response.status_code)}"
    for issue in body.get("issues") or []:
        text += f"\n   - {issue}"
    for suggestion in body.get("suggestions") or []:
        text += f"\n   💡 {suggestion}"
    return text


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def send_message(message, provider=None):
    """
    Send a message to POST /chat and return the tutor's reply (or an error line).

    The session id returned by the server is remembered so the next message
    continues the same conversation.
    """
    global SESSION_ID

    payload = {"message": message}
    if SESSION_ID:
        payload["sessionId"] = SESSION_ID
    if provider:
        payload["provider"] = provider

    try:
        response = requests.post(f"{BASE_URL}/chat", json=payload, timeout=60)
    except requests.exceptions.ConnectionError:
        return "❌ Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "❌ Request timed out. Try a shorter question."

    if response.status_code != 200:
        return _error_message(response)

    data = response.json()["data"]
    SESSION_ID = data.get("sessionId", SESSION_ID)
    meta = data.get("metadata", {})
    return (
        f"{data.get('content', 'No response')}\n"
        f"   [{meta.get('provider')}/{meta.get('model')} | tokens: {meta.get('tokens')} | "
        f"safety: {meta.get('safetyScore')} | {meta.get('processingTime')} ms]"
    )


def validate_message(message):
    try:
        response = requests.post(f"{BASE_URL}/validate", json={"message": message}, timeout=10)
    except requests.exceptions.RequestException as e:
        return f"❌ Error: {e}"
    if response.status_code != 200:
        return _error_message(response)

    data = response.json()["data"]
    status = "✅ valid" if data["isValid"] else "⛔ would be blocked"
    output = f"Safety score: {data['safetyScore']} ({status})"
    for issue, suggestion in zip(data.get("issues", []), data.get("suggestions", [])):
        output += f"\n   - {issue}\n     💡 {suggestion}"
    return output


def list_providers():
    try:
        response = requests.get(f"{BASE_URL}/providers", timeout=10)
    except requests.exceptions.RequestException as e:
        return f"❌ Error: {e}"
    if response.status_code != 200:
        return _error_message(response)

    data = response.json()["data"]
    lines = [f"Default provider: {data['defaultProvider']}"]
    for p in data["providers"]:
        lines.append(f"  {p['name']:<10} {p['status']:<12} {', '.join(p['models'])}")
    return "\n".join(lines)


def get_chat_history():
    """Fetch and format the messages of the current session."""
    if not SESSION_ID:
        return "No active session"

    try:
        response = requests.get(
            f"{BASE_URL}/chat/history",
            params={"sessionId": SESSION_ID, "limit": 100},
            timeout=10,
        )
    except requests.exceptions.RequestException as e:
        return f"Error retrieving history: {e}"
    if response.status_code != 200:
        return "Could not retrieve history"

    messages = response.json()["data"].get("messages", [])
    if not messages:
        return "No messages in this session"

    output = f"\n📜 Chat History ({len(messages)} messages):\n"
    output += "-" * 60 + "\n"
    for i, msg in enumerate(messages, 1):
        role = "You" if msg.get("role") == "user" else ASSISTANT_NAME
        output += f"{i}. {role}: {msg.get('content', '')}\n"
    output += "-" * 60 + "\n"
    return output


def clear_session():
    """Delete the current session on the server (if any) and forget its id."""
    global SESSION_ID
    if not SESSION_ID:
        return "No active session"
    try:
        response = requests.delete(f"{BASE_URL}/chat/history/{SESSION_ID}", timeout=10)
    except requests.exceptions.RequestException as e:
        return f"❌ Error: {e}"
    SESSION_ID = None
    if response.status_code != 200:
        return _error_message(response)
    deleted = response.json()["data"]["deletedMessages"]
    return f"🔄 Session cleared ({deleted} messages deleted). Starting fresh!"


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    global CURRENT_PROVIDER

    print_header()

    while True:
        user_input = get_user_input()
        if user_input is None or user_input in ("/quit", "/exit"):
            print("\n👋 Goodbye!")
            break
        if not user_input:
            continue

        if user_input == "/provider":
            CURRENT_PROVIDER = None
            print("✅ Using the server's default provider")
        elif user_input.startswith("/provider "):
            CURRENT_PROVIDER = user_input.split(maxsplit=1)[1].strip().lower()
            print(f"✅ Using provider: {CURRENT_PROVIDER}")
        elif user_input == "/providers":
            print(list_providers())
        elif user_input.startswith("/validate "):
            print(validate_message(user_input.split(maxsplit=1)[1]))
        elif user_input == "/history":
            print(get_chat_history())
        elif user_input == "/clear":
            print(clear_session())
        elif user_input.startswith("/"):
            print(f"❌ Unknown command: {user_input}")
        else:
            print(f"🤖 {ASSISTANT_NAME}: ", end="", flush=True)
            print(send_message(user_input, CURRENT_PROVIDER))


# Run the interactive loop when this file is executed (python test.py).
if __name__ == "__main__":
    main()
