def register_blueprints(app):
    from chiral.api.auth import bp as auth_bp
    from chiral.api.articles import bp as articles_bp
    from chiral.api.highlights import bp as highlights_bp
    from chiral.api.notes import bp as notes_bp
    from chiral.api.gemini import bp as gemini_bp
    from chiral.api.public import bp as public_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(articles_bp)
    app.register_blueprint(highlights_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(gemini_bp)
    app.register_blueprint(public_bp)
