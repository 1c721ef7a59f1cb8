"""Application entrypoint"""
import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

from pegasus_admin import create_app

app = create_app(os.environ.get('FLASK_CONFIG') or 'default')

if __name__ == '__main__':
    app.run(debug=True, port=5000)
