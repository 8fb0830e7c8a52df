from flask import Blueprint, current_app, send_from_directory

media_bp = Blueprint("media", __name__)


@media_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    # send_from_directory refuses paths that leave the folder
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
