"""
Flask-based single-page viewer: pick a model, step through the image set.
"""

import time
import logging
from typing import Callable, Dict, Optional

from flask import Flask, Response, abort, jsonify, render_template_string, request

from .catalog import Catalog
from .config import Config, InferenceConfig
from .detector import Detector, DetectionResult
from .errors import CatalogError, ViewerError
from .utils import encode_jpeg


logger = logging.getLogger(__name__)

DetectorFactory = Callable[[str, InferenceConfig], Detector]

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>LiteRT Viewer</title>
  <style>
    body { font-family: sans-serif; margin: 20px; }
    .controls { display: flex; gap: 20px; align-items: center; margin-bottom: 20px; }
    .panels { display: flex; gap: 30px; }
    .panel { flex: 1; min-width: 64px; text-align: center; }
    .panel img { max-width: 100%; height: auto; }
    #status { color: #555; }
    #error { color: #c00; }
  </style>
</head>
<body>
  <div class="controls">
    <select id="model">
      {% for name in models %}<option value="{{ name }}">{{ name }}</option>{% endfor %}
    </select>
    <button id="process">Process</button>
    <button id="next">Next</button>
    <span id="status"></span>
    <span id="error"></span>
  </div>
  <div class="panels">
    <div class="panel"><img id="input" alt=""></div>
    <div class="panel"><img id="output" alt=""></div>
  </div>
  <script>
    async function run(action) {
      const model = document.getElementById('model').value;
      document.getElementById('error').textContent = '';
      const resp = await fetch('/api/' + action, {
        method: 'POST',
        headers: {'Content-Type': 'application/json'},
        body: JSON.stringify({model: model})
      });
      const data = await resp.json();
      if (!resp.ok) {
        document.getElementById('error').textContent = data.error;
        return;
      }
      const stamp = Date.now();
      document.getElementById('input').src = '/image/input.jpg?t=' + stamp;
      document.getElementById('output').src = '/image/output.jpg?t=' + stamp;
      document.getElementById('status').textContent =
        data.image + ': ' + data.num_detections + ' detections, ' +
        data.inference_time_ms + ' ms';
    }
    document.getElementById('process').onclick = () => run('process');
    document.getElementById('next').onclick = () => run('next');
  </script>
</body>
</html>
"""


class Viewer:
    """
    Web front end over a Catalog and a Detector.

    Requests are served one at a time; inference runs inside the request.
    """

    def __init__(self, config: Config, catalog: Catalog,
                 detector_factory: Optional[DetectorFactory] = None):
        self.config = config
        self.catalog = catalog
        self.detector_factory = detector_factory or Detector
        self.app = Flask(__name__)
        self.app.logger.setLevel(logging.WARNING)

        self.detector: Optional[Detector] = None
        self.detector_model: Optional[str] = None
        self.last_result: Optional[DetectionResult] = None
        self.start_time = time.time()

        self._setup_routes()

    def _setup_routes(self):
        """Setup Flask routes."""

        @self.app.route('/')
        def index():
            """Serve web UI."""
            return render_template_string(INDEX_HTML, models=self.catalog.models())

        @self.app.route('/health')
        def health():
            """Health check endpoint."""
            return jsonify({
                'status': 'running',
                'uptime': int(time.time() - self.start_time),
                'model': self.detector_model,
            })

        @self.app.route('/api/models')
        def models():
            """Discovered models and images."""
            images = self.catalog.images()
            return jsonify({
                'models': self.catalog.models(),
                'images': images,
                'current': self.catalog.image() if images else None,
            })

        @self.app.route('/api/process', methods=['POST'])
        def process():
            """Run detection on the current image."""
            return self._handle(advance=False)

        @self.app.route('/api/next', methods=['POST'])
        def next_image():
            """Advance to the next image and run detection."""
            return self._handle(advance=True)

        @self.app.route('/image/<kind>.jpg')
        def image(kind: str):
            """Annotated images from the last run."""
            if self.last_result is None or kind not in ('input', 'output'):
                abort(404)
            frame = self.last_result.resized if kind == 'input' else self.last_result.original
            return Response(
                encode_jpeg(frame, self.config.viewer.jpeg_quality),
                mimetype='image/jpeg'
            )

    def _handle(self, advance: bool):
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({'error': "Expected a JSON object"}), 400
        model = payload.get('model')
        if not model:
            return jsonify({'error': "Missing 'model'"}), 400

        try:
            model_path = self.catalog.model_path(model)
            image_path = self.catalog.next_image() if advance else self.catalog.image()
            detector = self._get_detector(model, model_path)
            self.last_result = detector.process(image_path)
        except CatalogError as e:
            logger.warning(str(e))
            return jsonify({'error': str(e)}), 404
        except ViewerError as e:
            logger.error(f"Processing failed: {e}")
            return jsonify({'error': str(e)}), 500
        except Exception as e:
            logger.error(f"Processing failed: {e}", exc_info=True)
            return jsonify({'error': str(e) or type(e).__name__}), 500

        result = self.last_result.to_dict()
        result['model'] = model
        return jsonify(result)

    def _get_detector(self, model: str, model_path: str) -> Detector:
        """Detector for the selected model, rebuilt when the selection changes."""
        if self.detector is None or self.detector_model != model:
            if self.detector is not None:
                self.detector.cleanup()
                self.detector = None
                self.detector_model = None
            logger.info(f"Loading detector for {model}")
            self.detector = self.detector_factory(model_path, self.config.inference)
            self.detector_model = model
        return self.detector

    def serve(self):
        """Run the viewer in the foreground until interrupted."""
        host, port = self.config.viewer.host, self.config.viewer.port
        logger.info(f"Viewer available at http://{host}:{port}/")
        try:
            self.app.run(
                host=host,
                port=port,
                threaded=False,
                debug=False,
                use_reloader=False
            )
        finally:
            if self.detector is not None:
                self.detector.cleanup()
