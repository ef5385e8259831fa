from vrukshaveda import create_app, playback

if __name__ == '__main__':
    app = create_app()
    playback.socketio.run(app, debug=True)
