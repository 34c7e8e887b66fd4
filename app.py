import os
from orderpay import create_app
from orderpay.extensions import order_store

app = create_app(os.getenv('FLASK_ENV', 'development'))

@app.shell_context_processor
def make_shell_context():
    from orderpay.providers import get_provider
    return {
        'order_store': order_store,
        'get_provider': get_provider
    }

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
