"""HTML page showing the original email thread(s) behind a cited knowledge pair."""

from html import escape

from inquiro.core.knowledge_db import KnowledgePair, SourceThread

_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
.container { max-width: 800px; margin: 0 auto; background: white; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); overflow: hidden; }
.header { background: #2563eb; color: white; padding: 20px; }
.header h1 { margin: 0; font-size: 1.5rem; }
.header p { margin: 10px 0 0 0; opacity: 0.9; }
.knowledge-summary { background: #f8fafc; padding: 20px; border-bottom: 1px solid #e2e8f0; }
.knowledge-summary h2 { margin: 0 0 15px 0; color: #1e293b; font-size: 1.2rem; }
.qa-pair { background: white; padding: 15px; border-radius: 6px; border-left: 4px solid #2563eb; }
.threads { padding: 20px; }
.thread { margin-bottom: 30px; border: 1px solid #e2e8f0; border-radius: 8px; overflow: hidden; }
.thread-header { background: #f1f5f9; padding: 15px; border-bottom: 1px solid #e2e8f0; }
.thread-header h3 { margin: 0; color: #1e293b; }
.message { padding: 15px; border-bottom: 1px solid #f1f5f9; }
.message:last-child { border-bottom: none; }
.message-header { margin-bottom: 10px; font-size: 0.9rem; color: #64748b; }
.message-content { line-height: 1.6; color: #1e293b; white-space: pre-wrap; }
.empty { color: #64748b; font-style: italic; }
"""


def _render_thread(thread: SourceThread) -> str:
    messages = "".join(
        f"""
        <div class="message">
          <div class="message-header">
            <strong>From:</strong> {escape(m.author_email)} |
            <strong>Date:</strong> {escape(m.sent_at)} |
            <strong>Message ID:</strong> {escape(m.original_message_id)}
          </div>
          <div class="message-content">{escape(m.content)}</div>
        </div>"""
        for m in thread.messages
    )
    return f"""
      <div class="thread">
        <div class="thread-header"><h3>Thread: {escape(thread.subject)}</h3></div>{messages}
      </div>"""


def render_source_page(pair: KnowledgePair, threads: list[SourceThread]) -> str:
    body = "".join(_render_thread(t) for t in threads) or (
        '<p class="empty">No source messages are linked to this knowledge pair.</p>'
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Original Email Thread - {escape(pair.question)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>Original Email Thread</h1>
      <p>Knowledge Pair ID: {escape(pair.id)}</p>
    </div>
    <div class="knowledge-summary">
      <h2>Knowledge Extracted</h2>
      <div class="qa-pair">
        <strong>Question:</strong> {escape(pair.question)}<br>
        <strong>Answer:</strong> {escape(pair.answer)}
      </div>
    </div>
    <div class="threads">{body}
    </div>
  </div>
</body>
</html>
"""
