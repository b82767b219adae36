"""Local HTTP listener for the OAuth redirect.

Spotify redirects the browser to GET /callback?code=...&state=... once the user
has logged in. The listener checks the anti-forgery state, exchanges the code
for a token and hands an authenticated client to whoever owns the Future it
was given. Exactly one outcome (client or AuthError) is delivered per Future;
later callbacks are answered but ignored.
"""

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

import requests
import spotipy.exceptions

from log_setup import get_logger
from spotify_client import create_client

log = get_logger("auth_callback")

CALLBACK_PATH = "/callback"
LOGIN_COMPLETED = "Login Completed!"


class AuthError(Exception):
    """The OAuth callback did not yield a token: denied, forged or failed exchange."""


class CallbackServer(HTTPServer):
    """HTTPServer carrying the state of one login attempt."""

    def __init__(self, address, oauth, state, result, client_factory=create_client):
        super().__init__(address, CallbackHandler)
        self.oauth = oauth
        self.expected_state = state
        self.result = result
        self.client_factory = client_factory

    def deliver(self, client=None, error=None):
        if self.result.done():
            log.warning("Ignoring repeated OAuth callback")
            return
        if error is not None:
            self.result.set_exception(error)
        else:
            self.result.set_result(client)


class CallbackHandler(BaseHTTPRequestHandler):

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            log.info(f"Got request for: {self.path}")
            self._respond(200, "")
            return

        qs = parse_qs(parsed.query)
        state = qs.get("state", [None])[0]
        error = qs.get("error", [None])[0]
        code = qs.get("code", [None])[0]

        if state != self.server.expected_state:
            self._respond(404, "Not Found")
            self.server.deliver(error=AuthError(f"State mismatch: {state} != {self.server.expected_state}"))
            return

        if error or not code:
            self._respond(403, "Couldn't get token")
            self.server.deliver(error=AuthError(f"Authorization failed: {error or 'no code in callback'}"))
            return

        try:
            self.server.oauth.get_access_token(code, as_dict=False, check_cache=False)
        except (spotipy.exceptions.SpotifyOauthError, requests.exceptions.RequestException) as e:
            self._respond(403, "Couldn't get token")
            self.server.deliver(error=AuthError(f"Token exchange failed: {e}"))
            return

        self._respond(200, LOGIN_COMPLETED)
        self.server.deliver(client=self.server.client_factory(self.server.oauth))

    def _respond(self, status, body):
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        log.debug(f"callback: {format % args}")


def start_callback_server(oauth, state, result, port, host="127.0.0.1", client_factory=create_client):
    """Bind the listener and serve it on a daemon thread.

    Raises OSError if the port cannot be bound.
    """
    server = CallbackServer((host, port), oauth, state, result, client_factory=client_factory)
    thread = threading.Thread(target=server.serve_forever, name="oauth-callback", daemon=True)
    thread.start()
    log.debug(f"Listening for the OAuth callback on {host}:{server.server_port}")
    return server


def stop_callback_server(server):
    server.shutdown()
    server.server_close()
