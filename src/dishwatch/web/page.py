"""The single HTML page served at ``/``."""

from __future__ import annotations

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>dishwatch</title>
  <style>
    body { font-family: sans-serif; margin: 1rem; background: #fafafa; }
    img { display: block; max-width: 100%; margin-bottom: 1rem; background: #fff; }
    #status { color: #666; font-size: 0.9rem; }
  </style>
</head>
<body>
  <p id="status">connecting...</p>
  <img id="chart-0" src="/initial/down" alt="Downlink Throughput">
  <img id="chart-1" src="/initial/up" alt="Uplink Throughput">
  <img id="chart-2" src="/initial/ping" alt="Ping Latency">
  <script>
    const status = document.getElementById("status");
    const urls = {};

    function show(tag, blob) {
      const img = document.getElementById("chart-" + tag);
      if (!img) return;
      const url = URL.createObjectURL(blob);
      if (urls[tag]) URL.revokeObjectURL(urls[tag]);
      urls[tag] = url;
      img.src = url;
    }

    function connect() {
      const proto = location.protocol === "https:" ? "wss:" : "ws:";
      const ws = new WebSocket(proto + "//" + location.host + "/ws");
      ws.binaryType = "arraybuffer";
      ws.onopen = () => { status.textContent = "live"; };
      ws.onmessage = (event) => {
        const bytes = new Uint8Array(event.data);
        if (bytes.length < 2) return;
        show(bytes[0], new Blob([bytes.subarray(1)], { type: "image/png" }));
      };
      ws.onclose = () => {
        status.textContent = "disconnected, retrying in 5s";
        setTimeout(connect, 5000);
      };
    }

    connect();
  </script>
</body>
</html>
"""
