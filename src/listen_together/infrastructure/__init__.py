"""Infrastructure layer: adapters for socket.io, HTTP, yt-dlp and the web API."""
