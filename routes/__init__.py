from .auth import auth_bp
from .businesses import businesses_bp
from .recipients import recipients_bp
from .drafts import drafts_bp
from .upload import upload_bp

def register_blueprints(app):
    app.register_blueprint(auth_bp)
    app.register_blueprint(businesses_bp)
    app.register_blueprint(recipients_bp)
    app.register_blueprint(drafts_bp)
    app.register_blueprint(upload_bp)
