"""
Setup portal for wifiboot.

Serves the network selection page to a user connected to the
configuration access point, and hands submitted credentials to the
orchestrator. Handles Android, iOS and Windows captive portal detection.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass, field

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
import uvicorn

from wifiboot.core.errors import CommandFailure, TransitionInProgress
from wifiboot.core.orchestrator import ConnectivityOrchestrator
from wifiboot.core.state import WiFiCredentials

logger = logging.getLogger(__name__)


def unique_networks(networks: list[str]) -> list[str]:
    """Drop repeated names (one per access point), keeping signal order."""
    return list(dict.fromkeys(networks))


@dataclass
class SetupPortal:
    """
    HTTP front end for provisioning.

    A POST to /api/connect is answered as soon as the orchestrator
    acknowledges it, before the access point is torn down. The rest of
    the reconfiguration carries on in the background.
    """

    orchestrator: ConnectivityOrchestrator
    host: str = "0.0.0.0"
    port: int = 80
    gateway_ip: str = "10.0.0.1"

    _app: FastAPI = field(default=None, init=False)  # type: ignore
    _server: uvicorn.Server | None = field(default=None, init=False)
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False)

    def __post_init__(self) -> None:
        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        return self._app

    def _create_app(self) -> FastAPI:
        """Create the FastAPI application."""
        app = FastAPI(
            title="wifiboot setup",
            docs_url=None,
            redoc_url=None,
        )

        # ====================================================================
        # Health Check Endpoint
        # ====================================================================

        @app.get("/health")
        async def health_check() -> dict:
            return {"status": "ok", "mode": self.orchestrator.mode.value}

        # ====================================================================
        # Captive Portal Detection Endpoints
        # ====================================================================

        @app.get("/generate_204")
        async def android_captive_check() -> Response:
            """Android captive portal detection."""
            return self._redirect_to_gateway()

        @app.get("/hotspot-detect.html")
        async def ios_captive_check() -> Response:
            """iOS only shows the portal if this does NOT return "Success"."""
            return self._redirect_to_gateway()

        @app.get("/connecttest.txt")
        async def windows_captive_check() -> Response:
            """Windows captive portal detection."""
            return self._redirect_to_gateway()

        # ====================================================================
        # Pages
        # ====================================================================

        @app.get("/")
        async def root() -> RedirectResponse:
            """Send the user to whichever page matches our connectivity."""
            if await self.orchestrator.is_connected():
                return RedirectResponse(url="/status")
            return RedirectResponse(url="/wifiSetup")

        @app.get("/wifiSetup", response_class=HTMLResponse)
        async def wifi_setup_page() -> HTMLResponse:
            networks = unique_networks(await self.orchestrator.scan_networks())
            return HTMLResponse(content=self._get_setup_html(networks))

        @app.get("/status", response_class=HTMLResponse)
        async def status_page() -> HTMLResponse:
            status = await self._read_status()
            return HTMLResponse(content=self._get_status_html(status))

        # ====================================================================
        # API
        # ====================================================================

        @app.get("/api/networks")
        async def list_networks() -> JSONResponse:
            networks = unique_networks(await self.orchestrator.scan_networks())
            return JSONResponse(
                content={
                    "networks": networks,
                    "mode": self.orchestrator.mode.value,
                }
            )

        @app.get("/api/status")
        async def get_status() -> JSONResponse:
            return JSONResponse(content=await self._read_status())

        @app.post("/api/connect")
        async def connect(credentials: WiFiCredentials) -> JSONResponse:
            """Start switching to the submitted network."""
            if self.orchestrator.is_transitioning:
                raise HTTPException(
                    status_code=409,
                    detail="A network change is already in progress",
                )

            logger.info(f"Received credentials for SSID: {credentials.ssid}")

            try:
                await self._start_reconfiguration(credentials)
            except TransitionInProgress as e:
                raise HTTPException(status_code=409, detail=str(e))

            return JSONResponse(
                content={
                    "success": True,
                    "ssid": credentials.ssid,
                    "message": f"Connecting to {credentials.ssid}...",
                }
            )

        return app

    async def _start_reconfiguration(self, credentials: WiFiCredentials) -> None:
        """Run reconfigure() in the background, returning once it acknowledges."""
        loop = asyncio.get_running_loop()
        acknowledged: asyncio.Future = loop.create_future()

        def acknowledge() -> None:
            if not acknowledged.done():
                acknowledged.set_result(True)

        task = asyncio.create_task(
            self.orchestrator.reconfigure(credentials, acknowledge=acknowledge)
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_reconfiguration_done)

        await asyncio.wait({acknowledged, task}, return_when=asyncio.FIRST_COMPLETED)

        if not acknowledged.done():
            acknowledged.cancel()
            # Finished without acknowledging; surface its error
            task.result()

    def _on_reconfiguration_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, TransitionInProgress):
            logger.error(f"Reconfiguration ended with an error: {error}")

    async def _read_status(self) -> dict:
        status: dict = {"mode": self.orchestrator.mode.value}

        try:
            status["ssid"] = await self.orchestrator.get_connected_network()
            status["known_networks"] = await self.orchestrator.get_known_networks()
        except CommandFailure as e:
            logger.warning(f"Could not read network status: {e}")
            status["ssid"] = ""
            status["known_networks"] = []

        return status

    def _redirect_to_gateway(self) -> RedirectResponse:
        return RedirectResponse(url=f"http://{self.gateway_ip}/", status_code=302)

    async def start(self) -> None:
        """Start the portal server."""
        logger.info(f"Starting setup portal on {self.host}:{self.port}")

        config = uvicorn.Config(
            self._app,
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)

        # Run in background
        task = asyncio.create_task(self._server.serve())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Setup portal running at http://{self.gateway_ip}/")

    async def stop(self) -> None:
        """Stop the portal server."""
        if self._server:
            self._server.should_exit = True
            self._server = None
            logger.info("Setup portal stopped")

    def _get_setup_html(self, networks: list[str]) -> str:
        """Generate the network selection page."""
        if networks:
            items = "\n".join(
                f'            <li class="network-item" data-ssid="{html.escape(ssid)}">'
                f"{html.escape(ssid)}</li>"
                for ssid in networks
            )
        else:
            items = '            <li class="status">No networks found. Enter one below.</li>'

        return _PAGE_HEAD.format(title="Wi-Fi Setup") + f"""
    <div class="container">
        <h1>Connect to Wi-Fi</h1>
        <ul class="network-list" id="network-list">
{items}
        </ul>
        <input type="text" id="ssid" placeholder="Network name">
        <input type="password" id="password" placeholder="Password (leave blank for open networks)">
        <button id="connect-btn">Connect</button>
        <div id="connect-status" class="status"></div>
    </div>

    <script>
        const ssidInput = document.getElementById('ssid');
        const passwordInput = document.getElementById('password');
        const connectBtn = document.getElementById('connect-btn');
        const connectStatus = document.getElementById('connect-status');

        document.querySelectorAll('.network-item').forEach(item => {{
            item.addEventListener('click', () => {{
                document.querySelectorAll('.network-item').forEach(i => i.classList.remove('selected'));
                item.classList.add('selected');
                ssidInput.value = item.dataset.ssid;
                passwordInput.focus();
            }});
        }});

        connectBtn.addEventListener('click', async () => {{
            connectBtn.disabled = true;
            connectStatus.className = 'status';
            connectStatus.textContent = 'Connecting...';

            try {{
                const res = await fetch('/api/connect', {{
                    method: 'POST',
                    headers: {{ 'Content-Type': 'application/json' }},
                    body: JSON.stringify({{
                        ssid: ssidInput.value,
                        password: passwordInput.value
                    }})
                }});
                const data = await res.json();

                if (!res.ok) {{
                    throw new Error(typeof data.detail === 'string' ? data.detail : 'Please enter a network name');
                }}

                connectStatus.classList.add('success');
                connectStatus.textContent = data.message +
                    ' This access point will now close. Reconnect your phone to ' +
                    data.ssid + '.';
            }} catch (e) {{
                connectStatus.classList.add('error');
                connectStatus.textContent = e.message;
                connectBtn.disabled = false;
            }}
        }});
    </script>
</body>
</html>"""

    def _get_status_html(self, status: dict) -> str:
        """Generate the connection status page."""
        mode = html.escape(status["mode"])
        ssid = html.escape(status["ssid"]) or "not connected"
        known = "\n".join(
            f"            <li>{html.escape(name)}</li>" for name in status["known_networks"]
        )

        return _PAGE_HEAD.format(title="Status") + f"""
    <div class="container">
        <h1>Status</h1>
        <p>Mode: <strong>{mode}</strong></p>
        <p>Connected to: <strong>{ssid}</strong></p>
        <h2>Known networks</h2>
        <ul class="network-list">
{known}
        </ul>
        <p><a href="/wifiSetup">Use a different network</a></p>
    </div>
</body>
</html>"""


_PAGE_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        * {{ box-sizing: border-box; margin: 0; padding: 0; }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #f4f4f5;
            color: #18181b;
            padding: 20px;
        }}
        .container {{ max-width: 400px; margin: 0 auto; }}
        h1 {{ font-size: 24px; margin-bottom: 16px; }}
        h2 {{ font-size: 18px; margin: 16px 0 8px; }}
        p {{ margin-bottom: 8px; }}
        .network-list {{ list-style: none; max-height: 240px; overflow-y: auto; }}
        .network-item {{
            padding: 12px 16px;
            margin: 6px 0;
            background: #fff;
            border-radius: 8px;
            cursor: pointer;
        }}
        .network-item.selected {{ border: 1px solid #2563eb; }}
        input {{
            width: 100%;
            padding: 12px;
            margin-top: 12px;
            border: 1px solid #d4d4d8;
            border-radius: 8px;
            font-size: 16px;
        }}
        button {{
            width: 100%;
            padding: 14px;
            margin-top: 16px;
            border: none;
            border-radius: 8px;
            background: #2563eb;
            color: #fff;
            font-size: 16px;
        }}
        button:disabled {{ background: #a1a1aa; }}
        .status {{ text-align: center; padding: 16px; color: #52525b; }}
        .status.error {{ color: #dc2626; }}
        .status.success {{ color: #16a34a; }}
    </style>
</head>
<body>"""
