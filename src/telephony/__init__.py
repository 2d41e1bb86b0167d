"""Call session handling for SIP calls bridged to OpenAI Realtime.

Flow per call: accept over HTTP, then one WebSocket per call id until it closes.
"""
