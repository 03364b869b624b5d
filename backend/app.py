from flask import Flask, request, jsonify, send_file, g, Response, stream_with_context
from flask_cors import CORS
from functools import wraps
from datetime import datetime
import os
import json
import logging

# Setup Logging
log_file = os.environ.get('LOG_FILE', 'server.log')
logging.basicConfig(
    filename=log_file,
    level=logging.DEBUG,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logging.info("Server starting up...")

from backend.ingest.config import Config
from backend.ingest.errors import UploadError, StoreError
from backend.ingest.export import ReportExporter, sales_frame, inventory_frame
from backend.ingest.pipeline import UploadPipeline
from backend.supabase_client import SupabaseStore, PIPELINE_TABLES


app = Flask(__name__)
cors_origins = os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',')
CORS(app, resources={r"/*": {"origins": cors_origins}})

# Initialize Store & Pipeline
store = SupabaseStore()
pipeline = UploadPipeline(store)
exporter = ReportExporter()

EXPORT_MIMETYPES = {
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def require_session(view):
    """Reject requests without a valid Supabase session before any pipeline step."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        auth = request.headers.get('Authorization', '')
        token = auth[7:].strip() if auth.lower().startswith('bearer ') else ''
        user_id = store.get_user_id(token)
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401
        g.user_id = user_id
        return view(*args, **kwargs)
    return wrapper


def _read_upload():
    """Returns (filename, text) or raises for a missing file."""
    file = request.files.get('file')
    if file is None or file.filename == '':
        return None, None
    text = file.read().decode('utf-8-sig', errors='ignore')
    return file.filename, text


def _result_response(result):
    status = result.pop("status", 200 if result.get("success") else 500)
    if not result.get("success"):
        body = {"error": result.get("error")}
        if "details" in result:
            body["details"] = result["details"]
        if result.get("uploadId"):
            body["uploadId"] = result["uploadId"]
        return jsonify(body), status
    return jsonify(result), status


@app.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"})


@app.route('/upload', methods=['POST'])
@require_session
def upload_csv():
    filename, text = _read_upload()
    if filename is None:
        return jsonify({"error": "No file provided"}), 400

    result = pipeline.run(filename, text, user_id=g.user_id)
    return _result_response(result)


@app.route('/upload/stream', methods=['POST'])
@require_session
def upload_csv_stream():
    filename, text = _read_upload()
    if filename is None:
        return jsonify({"error": "No file provided"}), 400
    user_id = g.user_id

    def generate():
        # Only plain values from here on; the request may already be gone
        for p, msg, res in pipeline.process(filename, text, user_id=user_id):
            if res:
                frame = dict(res)
                frame["code"] = frame.pop("status", None)
                frame["status"] = "success" if res.get("success") else "failed"
                yield json.dumps(frame) + "\n"
            else:
                yield json.dumps({"p": p, "status": msg}) + "\n"

    return Response(stream_with_context(generate()), mimetype='application/x-ndjson')


@app.route('/upload/preview', methods=['POST'])
@require_session
def preview_csv():
    filename, text = _read_upload()
    if filename is None:
        return jsonify({"error": "No file provided"}), 400
    try:
        return jsonify(pipeline.preview(filename, text))
    except UploadError as e:
        return jsonify(e.to_dict()), e.status_code


@app.route('/uploads/<upload_id>', methods=['GET'])
@require_session
def upload_status(upload_id):
    try:
        audit = pipeline.get_status(upload_id)
    except StoreError as e:
        return jsonify(e.to_dict()), e.status_code
    if audit is None:
        return jsonify({"error": "Upload not found"}), 404
    return jsonify(audit.to_dict())


@app.route('/uploads', methods=['GET'])
@require_session
def upload_history():
    limit = request.args.get('limit', Config.HISTORY_LIMIT, type=int)
    try:
        uploads = pipeline.list_uploads(limit)
    except StoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify([u.to_dict() for u in uploads])


@app.route('/export/<report>', methods=['GET'])
@require_session
def export_report(report):
    target_format = request.args.get('format', 'csv').lower()
    if target_format not in EXPORT_MIMETYPES:
        return jsonify({"error": f"Unsupported export format: {target_format}"}), 400

    try:
        if report == 'sales':
            df = sales_frame(store.list_sales())
        elif report == 'inventory':
            df = inventory_frame(store.list_inventory())
        else:
            return jsonify({"error": "Report not found"}), 404
    except StoreError as e:
        return jsonify(e.to_dict()), e.status_code

    buffer = exporter.generate(df, report.capitalize(), target_format)
    filename = f"{report}-export-{datetime.now().strftime('%Y-%m-%d')}.{target_format}"
    return send_file(buffer, as_attachment=True, download_name=filename,
                     mimetype=EXPORT_MIMETYPES[target_format])


@app.route('/admin/clear-tables', methods=['POST'])
@require_session
def clear_tables():
    results = []
    for table in PIPELINE_TABLES:
        try:
            count = store.clear_table(table)
            logging.info(f"Cleared table {table} ({count} rows)")
            results.append({"table": table, "status": "success", "rowsCleared": count})
        except StoreError as e:
            logging.error(f"Error clearing table {table}: {e.details}")
            results.append({"table": table, "status": "error", "message": e.message})

    return jsonify({"success": True, "message": "Tables cleared", "results": results})


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=os.environ.get('FLASK_DEBUG', 'False') == 'True')
