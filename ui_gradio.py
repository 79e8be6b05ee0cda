# ui_gradio.py
import os
import json
from typing import Any, Dict, Iterable, Iterator

import requests
import gradio as gr


API_URL = os.getenv("API_URL", "http://localhost:8000/api/chat/stream")


def iter_sse_events(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Decode `data: <json>` lines, stopping after the first complete event."""
    for line in lines:
        if not line or not line.startswith("data: "):
            continue
        try:
            event = json.loads(line[len("data: "):])
        except json.JSONDecodeError:
            continue
        yield event
        if event.get("is_complete"):
            return


def call_backend(message: str, history: list, session_id: str):
    """
    Gradio streaming callback.
    - message: latest user message
    - history: chat messages as {role, content} dicts
    - session_id: empty until the server assigns one
    """
    payload = {"message": message}
    if session_id:
        payload["session_id"] = session_id

    history = history + [{"role": "user", "content": message}, {"role": "assistant", "content": ""}]
    yield "", history, session_id

    try:
        with requests.post(API_URL, json=payload, stream=True, timeout=120) as resp:
            for event in iter_sse_events(resp.iter_lines(decode_unicode=True)):
                if "error" in event:
                    bot_text = f"❗ {event['error']}"
                else:
                    bot_text = history[-1]["content"] + event.get("content", "")
                    session_id = event.get("session_id") or session_id
                history[-1] = {"role": "assistant", "content": bot_text}
                yield "", history, session_id
    except requests.RequestException as e:
        history[-1] = {"role": "assistant", "content": f"❗ Backend error: {e}"}
        yield "", history, session_id


def build_demo() -> gr.Blocks:
    with gr.Blocks() as demo:
        gr.Markdown("# ✈️ Travel Agent Chat")
        gr.Markdown("Ask about trips, activities, exchange rates and currency conversion.")

        chat = gr.Chatbot(height=500, type="messages")
        msg = gr.Textbox(
            label="Your message",
            placeholder="E.g. 'Convert 100 USD to EUR' or 'What should I see in Lisbon?'",
        )
        clear_btn = gr.Button("New conversation")

        # The server assigns the session id on the first reply
        session_id_state = gr.State("")

        msg.submit(
            fn=call_backend,
            inputs=[msg, chat, session_id_state],
            outputs=[msg, chat, session_id_state],
        )

        def reset_chat():
            return "", [], ""

        clear_btn.click(
            fn=reset_chat,
            inputs=None,
            outputs=[msg, chat, session_id_state],
        )
    return demo


if __name__ == "__main__":
    build_demo().launch()
