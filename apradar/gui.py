"""Flask + Socket.IO host for a live radar in the browser.

The engine renders on the server; every presented frame is pushed to the
page as a list of canvas operations which a small replayer draws.  Pointer
clicks, tab visibility and canvas size travel back the same socket.
"""

import os
import socket
import sys
import threading
import time
import webbrowser
from typing import Dict, Iterable

from .details import render_radar_fragment
from .radar import RadarEngine, RadarSurface, TimerScheduler

_HAS_FLASK = False
try:
    from flask import Flask, render_template_string, jsonify, request
    from flask_socketio import SocketIO
    _HAS_FLASK = True
except ImportError:
    pass

_RADAR_ID = "wifi-radar"

_GUI_HTML = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>APRADAR</title>
<style>
*,*::before,*::after{box-sizing:border-box;margin:0;padding:0}
html,body{height:100%;background:#0a0a0a;font-family:Arial,Helvetica,sans-serif}
body{padding:20px}
.wifi-radar-container{height:100%;background:linear-gradient(to bottom,#1a1a2e,#16213e);
  border-radius:12px;overflow:hidden;padding:20px;color:#fff;display:grid;
  grid-template-columns:1fr 300px;grid-template-rows:auto 1fr;
  grid-template-areas:"header header" "radar details";gap:20px}
.wifi-radar-container.light-mode{background:linear-gradient(to bottom,#f0f5ff,#e6f0ff);color:#333}
.wifi-radar-header{grid-area:header;display:flex;justify-content:space-between;
  align-items:center;flex-wrap:wrap;gap:20px;padding-bottom:15px;
  border-bottom:1px solid rgba(255,255,255,0.1)}
.wifi-radar-header h3{font-size:24px;font-weight:600;color:#00bfff}
.light-mode .wifi-radar-header h3{color:#0066cc}
.wifi-radar-legend{display:flex;flex-wrap:wrap;gap:15px}
.legend-item{display:flex;align-items:center;gap:8px;font-size:12px}
.legend-color{width:12px;height:12px;border-radius:3px;display:inline-block}
.wifi-radar-canvas-container{grid-area:radar;position:relative;background:rgba(0,0,0,0.2);
  border-radius:8px;overflow:hidden;min-height:0}
.light-mode .wifi-radar-canvas-container{background:rgba(255,255,255,0.8)}
.wifi-radar-canvas-container canvas{width:100%;height:100%;display:block;cursor:pointer}
.network-details-panel{grid-area:details;background:rgba(255,255,255,0.05);border-radius:8px;
  overflow:hidden;display:flex;flex-direction:column}
.light-mode .network-details-panel{background:rgba(255,255,255,0.9)}
.panel-title{background:rgba(0,127,255,0.2);padding:12px 15px;font-weight:600;
  font-size:16px;color:#00bfff}
.panel-content{padding:15px;overflow-y:auto;flex:1}
.panel-placeholder{color:rgba(255,255,255,0.5);text-align:center;padding:40px 0}
.light-mode .panel-placeholder{color:rgba(0,0,0,0.4)}
.network-detail-item{background:rgba(255,255,255,0.1);border-radius:6px;padding:12px;
  border-left:3px solid}
.light-mode .network-detail-item{background:rgba(0,0,0,0.03)}
.network-detail-name{font-weight:600;font-size:16px;margin-bottom:8px}
.network-detail-vendor{font-size:12px;opacity:.6;margin-top:-6px;margin-bottom:8px;font-style:italic}
.network-detail-row{display:flex;justify-content:space-between;margin-bottom:6px;font-size:13px}
.detail-label{opacity:.6}
.detail-value{font-weight:500}
.signal-bars{display:flex;align-items:flex-end;height:15px;gap:2px}
.signal-bar{width:4px;background-color:currentColor;border-radius:1px}
.signal-bar.inactive{background-color:rgba(255,255,255,0.2)}
.light-mode .signal-bar.inactive{background-color:rgba(0,0,0,0.1)}
.network-variant-section{margin-top:15px;border-top:1px solid rgba(255,255,255,0.1);padding-top:10px}
.variant-title{font-size:13px;font-weight:600;margin-bottom:8px;opacity:.7}
.network-variant{display:flex;justify-content:space-between;padding:4px 8px;
  background:rgba(255,255,255,0.05);margin-bottom:5px;border-radius:4px;font-size:12px}
.network-variant-bssid{font-size:10px;font-family:monospace;opacity:.5;padding-left:8px;
  margin-top:-3px;margin-bottom:5px}
</style>
</head>
<body>
{{ fragment | safe }}
<script src="https://cdn.socket.io/4.7.5/socket.io.min.js"></script>
<script>var WSPORT = {{ port }}; var RADAR_ID = "{{ radar_id }}";</script>
""" + r"""{% raw %}""" + r"""
<script>
(function(){
var canvas  = document.getElementById(RADAR_ID);
var ctx     = canvas.getContext("2d");
var details = document.getElementById(RADAR_ID + "-details");
var socket  = io(window.location.protocol+"//"+window.location.hostname+":"+WSPORT,
                 {transports:["websocket","polling"]});

function reportSize(){
  var rect = canvas.getBoundingClientRect();
  socket.emit("resize", {width:Math.floor(rect.width), height:Math.floor(rect.height)});
}
window.addEventListener("resize", reportSize);

/* ── frame replay ─────────────────────────────────────────── */
function draw(op){
  switch(op.op){
  case "clear":
    if(canvas.width !== op.width || canvas.height !== op.height){
      canvas.width = op.width; canvas.height = op.height;
    }
    ctx.clearRect(0, 0, canvas.width, canvas.height);
    break;
  case "circle":
    ctx.beginPath();
    ctx.arc(op.x, op.y, op.r, 0, Math.PI*2);
    if(op.fill){ ctx.fillStyle = op.fill; ctx.fill(); }
    if(op.stroke){ ctx.strokeStyle = op.stroke; ctx.lineWidth = op.width; ctx.stroke(); }
    break;
  case "line":
    ctx.beginPath();
    ctx.moveTo(op.x1, op.y1);
    ctx.lineTo(op.x2, op.y2);
    ctx.strokeStyle = op.stroke; ctx.lineWidth = op.width;
    ctx.stroke();
    break;
  case "wedge":
    var g = ctx.createRadialGradient(op.x, op.y, 0, op.x, op.y, op.r);
    g.addColorStop(0, op.inner);
    g.addColorStop(1, op.outer);
    ctx.beginPath();
    ctx.moveTo(op.x, op.y);
    ctx.arc(op.x, op.y, op.r, op.start, op.end);
    ctx.closePath();
    ctx.fillStyle = g;
    ctx.fill();
    break;
  case "text":
    ctx.font = op.font; ctx.fillStyle = op.color;
    ctx.textAlign = op.align; ctx.textBaseline = op.baseline;
    ctx.fillText(op.text, op.x, op.y);
    break;
  }
}

socket.on("frame", function(frame){
  for(var i=0;i<frame.ops.length;i++) draw(frame.ops[i]);
});
socket.on("details", function(html){ details.innerHTML = html; });

socket.on("connect", function(){
  reportSize();
  socket.emit("visibility", {visible:!document.hidden});
});

/* ── input ────────────────────────────────────────────────── */
canvas.addEventListener("click", function(e){
  var rect = canvas.getBoundingClientRect();
  socket.emit("pointer", {x:e.clientX - rect.left, y:e.clientY - rect.top});
});
document.addEventListener("visibilitychange", function(){
  socket.emit("visibility", {visible:!document.hidden});
});
})();
</script>
""" + r"""{% endraw %}""" + r"""
</body>
</html>
"""


class GuiServer:
    """Flask + SocketIO server hosting one radar engine."""

    def __init__(self, records: Iterable, port: int = 5000,
                 light_mode: bool = False):
        if not _HAS_FLASK:
            raise ImportError(
                "GUI requires Flask and flask-socketio. "
                "Install with: pip install flask flask-socketio")
        self._port = port
        self._light_mode = light_mode
        self._app = Flask(__name__)
        self._app.config['SECRET_KEY'] = os.urandom(24).hex()
        self._sio = SocketIO(self._app, async_mode='threading', cors_allowed_origins='*')
        self._thread = None
        self._lock = threading.Lock()
        # Socket.IO session id -> tab visible
        self._viewers: Dict[str, bool] = {}
        self._surface = RadarSurface(on_frame=self.emit_frame)
        self.engine = RadarEngine(
            records, self._surface, light_mode=light_mode,
            scheduler=TimerScheduler(), on_detail=self.emit_details)
        # nobody is watching until a browser connects
        self.engine.pause()
        self._setup_routes()
        self._setup_events()

    @property
    def port(self) -> int:
        return self._port

    def _setup_routes(self):
        @self._app.route('/')
        def index():
            return render_template_string(
                _GUI_HTML, port=self._port, radar_id=_RADAR_ID,
                fragment=render_radar_fragment(_RADAR_ID, self._light_mode))

        @self._app.route('/api/state')
        def state():
            return jsonify(self.engine.debug_state())

    def _setup_events(self):
        @self._sio.on('connect')
        def on_connect(*_args):
            with self._lock:
                self._viewers[request.sid] = True
            self._sync_visibility()
            self._sio.emit('details', self.engine.detail_html)

        @self._sio.on('disconnect')
        def on_disconnect(*_args):
            with self._lock:
                self._viewers.pop(request.sid, None)
            self._sync_visibility()

        @self._sio.on('pointer')
        def on_pointer(data):
            x, y = _coords(data, 'x', 'y')
            if x is not None:
                self.engine.handle_pointer(x, y)

        @self._sio.on('visibility')
        def on_visibility(data):
            visible = bool(data.get('visible', True)) if isinstance(data, dict) else True
            with self._lock:
                if request.sid in self._viewers:
                    self._viewers[request.sid] = visible
            self._sync_visibility()

        @self._sio.on('resize')
        def on_resize(data):
            w, h = _coords(data, 'width', 'height')
            if w and h and w > 0 and h > 0:
                self._surface.resize(int(w), int(h))

    def _sync_visibility(self):
        """Run the radar while at least one connected tab shows it."""
        with self._lock:
            watched = any(self._viewers.values())
        self.engine.set_visible(watched)

    def start(self):
        """Start the Flask server in a background thread."""
        ready = threading.Event()
        result = {'port': -1}

        def _serve():
            for p in range(self._port, self._port + 11):
                # probe the port before committing
                probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                try:
                    probe.bind(('0.0.0.0', p))
                    probe.close()
                except OSError:
                    probe.close()
                    continue
                result['port'] = p
                ready.set()
                try:
                    self._sio.run(self._app, host='0.0.0.0', port=p,
                                  allow_unsafe_werkzeug=True,
                                  log_output=False)
                except OSError:
                    pass
                return
            result['port'] = -1
            ready.set()

        self._thread = threading.Thread(target=_serve, daemon=True)
        self._thread.start()

        ready.wait(timeout=5)
        time.sleep(0.3)
        self._port = result['port']
        if self._port == -1:
            print("Error: Could not find open port for GUI server")
            sys.exit(1)

        url = f"http://localhost:{self._port}"
        print(f"  GUI server started at {url}")
        try:
            webbrowser.open(url)
        except Exception:
            print(f"  Could not open browser — navigate to {url}")

    def stop(self):
        """Detach the radar surface and shut the SocketIO server down."""
        self._surface.detach()
        self.engine.stop()
        try:
            self._sio.stop()
        except Exception:
            pass

    def emit_frame(self, frame: dict):
        self._sio.emit('frame', frame)

    def emit_details(self, html: str):
        self._sio.emit('details', html)


def _coords(data, kx: str, ky: str):
    """Pull a numeric pair out of a socket payload, (None, None) if malformed."""
    if not isinstance(data, dict):
        return None, None
    try:
        return float(data[kx]), float(data[ky])
    except (KeyError, TypeError, ValueError):
        return None, None
