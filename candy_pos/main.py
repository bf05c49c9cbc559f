# ==============================================================================
# API JSON - Órdenes de salida e inventario
# ==============================================================================
# Las rutas solo traducen HTTP <-> servicios. Toda la lógica vive en
# services/ y se obtiene desde el contenedor de dependencias.
#
# CONFIGURACIÓN (variables de entorno):
#   CANDY_DATA_DIR        Carpeta de los documentos JSON
#   CANDY_STOCK_POLICY    clamp | reject
#   CANDY_STARTUP_BACKUP  1 = backup diario al iniciar
#   CANDY_LOG_LEVEL       Nivel de logging (INFO por defecto)
#   FLASK_DEBUG / FLASK_HOST / FLASK_PORT  Servidor de desarrollo
# ==============================================================================

import logging
import os
from datetime import datetime

from flask import Flask, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException, NotFound as HTTPNotFound
from werkzeug.utils import secure_filename

from candy_pos import exceptions
from candy_pos.app_container import AppContainer, get_container
from candy_pos.exceptions import (
    BusinessRuleError,
    CandyPosError,
    DuplicateIdentifier,
    NotFound,
    OrderNotFound,
    StoreUnavailable,
    ValidationError,
)
from candy_pos.performance_logger import get_function_stats, init_profiling
from candy_pos.services.backup_service import run_startup_backup

logger = logging.getLogger(__name__)

BASE = os.path.dirname(os.path.abspath(__file__))

# Código HTTP por familia de error (la primera coincidencia gana)
ERROR_STATUS = (
    (ValidationError, 400),
    (NotFound, 404),
    (BusinessRuleError, 409),
    (DuplicateIdentifier, 409),
    (StoreUnavailable, 503),
)


def status_for(error_type: str) -> int:
    """Código HTTP para un errorType ('OrderNotActive' -> 409)."""
    cls = getattr(exceptions, error_type or '', None)
    if isinstance(cls, type) and issubclass(cls, CandyPosError):
        for base, status in ERROR_STATUS:
            if issubclass(cls, base):
                return status
    return 400


def configure_logging(level: str = None) -> None:
    """Configura el logging de la aplicación una sola vez."""
    level = (level or os.environ.get('CANDY_LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("El cuerpo de la petición debe ser un objeto JSON")
    return data


def _result(result: dict, success_status: int = 200):
    """Respuesta HTTP para el resultado {'success': ...} de un servicio."""
    if result.get('success'):
        return jsonify(result), success_status
    return jsonify(result), status_for(result.get('errorType'))


def create_app(base_path: str = None, container: AppContainer = None, startup_backup: bool = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        base_path: Carpeta de datos (CANDY_DATA_DIR o la del paquete)
        container: Contenedor ya armado (tests)
        startup_backup: Ejecutar el backup diario (CANDY_STARTUP_BACKUP)
    """
    if container is None:
        container = get_container(
            base_path or os.environ.get('CANDY_DATA_DIR') or BASE,
            stock_policy=os.environ.get('CANDY_STOCK_POLICY', 'clamp'),
        )
    if startup_backup is None:
        startup_backup = os.environ.get('CANDY_STARTUP_BACKUP', '1') == '1'

    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.extensions['candy_pos'] = container

    # Mide rendimiento de rutas. Logs en CANDY_LOGS_DIR
    init_profiling(app)

    if startup_backup:
        run_startup_backup(container.base_path)

    _register_error_handlers(app)
    _register_exit_order_routes(app, container)
    _register_product_routes(app, container)
    _register_backup_routes(app, container)

    logger.info("Aplicación iniciada con datos en %s", container.base_path)
    return app


# ==============================================================================
# MANEJO DE ERRORES
# ==============================================================================

def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(CandyPosError)
    def handle_domain_error(error):
        status = status_for(error.error_type)
        if status >= 500:
            logger.error("%s: %s", error.error_type, error.message)
        return jsonify({
            'success': False,
            'error': error.message,
            'errorType': error.error_type,
        }), status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'success': False,
            'error': error.description,
            'errorType': error.name,
        }), error.code


# ==============================================================================
# ÓRDENES DE SALIDA
# ==============================================================================

def _register_exit_order_routes(app: Flask, container: AppContainer) -> None:

    @app.route('/api/exit-orders', methods=['GET'])
    def list_exit_orders():
        filters = {
            'status': request.args.get('status'),
            'routeId': request.args.get('routeId'),
            'date': request.args.get('date'),
        }
        return jsonify(container.exit_order_service.get_orders(filters))

    @app.route('/api/exit-orders', methods=['POST'])
    def create_exit_order():
        data = _json_body()
        result = container.exit_order_service.create_order(
            data.get('routeId'),
            data.get('items'),
            vendor_name=data.get('vendorName', ''),
            route_name=data.get('routeName', ''),
        )
        return _result(result, 201)

    @app.route('/api/exit-orders/stats', methods=['GET'])
    def exit_order_stats():
        return jsonify(container.exit_order_service.get_stats(request.args.get('today')))

    @app.route('/api/exit-orders/<order_id>', methods=['GET'])
    def get_exit_order(order_id):
        order = container.exit_order_service.get_order_by_id(order_id)
        if order is None:
            raise OrderNotFound('Orden no encontrada')
        if request.args.get('include') == 'movements':
            order['movements'] = container.exit_order_service.get_order_movements(order_id)
        return jsonify(order)

    @app.route('/api/exit-orders/<order_id>/sales', methods=['POST'])
    def record_exit_order_sales(order_id):
        data = _json_body()
        return _result(container.exit_order_service.record_sales(order_id, data.get('soldItems')))

    @app.route('/api/exit-orders/<order_id>/complete', methods=['POST'])
    def complete_exit_order(order_id):
        return _result(container.exit_order_service.complete_order(order_id))

    @app.route('/api/exit-orders/<order_id>/cancel', methods=['POST'])
    def cancel_exit_order(order_id):
        return _result(container.exit_order_service.cancel_order(order_id))

    @app.route('/api/exit-orders/<order_id>/products', methods=['GET'])
    def sellable_products(order_id):
        return jsonify(container.exit_order_service.get_sellable_products(order_id))

    @app.route('/api/routes/<route_id>/active-exit-order', methods=['GET'])
    def active_exit_order(route_id):
        return jsonify({'order': container.exit_order_service.get_active_order_by_route(route_id)})


# ==============================================================================
# INVENTARIO
# ==============================================================================

def _register_product_routes(app: Flask, container: AppContainer) -> None:

    @app.route('/api/products', methods=['GET'])
    def list_products():
        return jsonify([p.to_public_dict() for p in container.stock_ledger.list_products()])

    @app.route('/api/products', methods=['POST'])
    def create_product():
        data = _json_body()
        product = container.stock_ledger.create_product(
            name=data.get('name'),
            price=data.get('price', 0),
            cost=data.get('cost', 0),
            stock=data.get('stock', 0),
            category=data.get('category', ''),
            product_id=data.get('id'),
        )
        return jsonify({'success': True, 'product': product.to_public_dict()}), 201

    @app.route('/api/products/<product_id>', methods=['GET'])
    def get_product(product_id):
        return jsonify(container.stock_ledger.get_product(product_id).to_public_dict())

    @app.route('/api/products/<product_id>/adjust', methods=['POST'])
    def adjust_product_stock(product_id):
        data = _json_body()
        new_stock = container.stock_ledger.apply_adjustment(
            product_id,
            data.get('type'),
            data.get('quantity'),
            notes=data.get('notes', ''),
        )
        return jsonify({'success': True, 'productId': product_id, 'newStock': new_stock})

    @app.route('/api/products/<product_id>/movements', methods=['GET'])
    def product_movements(product_id):
        return jsonify(container.stock_ledger.stock_history(product_id))

    @app.route('/api/movements', methods=['GET'])
    def search_movements():
        return jsonify(container.movement_service.search(
            movement_type=request.args.get('type') or None,
            from_date=request.args.get('from') or None,
            to_date=request.args.get('to') or None,
        ))


# ==============================================================================
# RESPALDOS Y EXPORTACIÓN
# ==============================================================================

def _register_backup_routes(app: Flask, container: AppContainer) -> None:

    @app.route('/api/export', methods=['GET'])
    def export_data():
        response = jsonify(container.backup_service.export_all_data())
        filename = f"candy_pos_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        response.headers['Content-Disposition'] = f'attachment; filename={filename}'
        return response

    @app.route('/api/backups', methods=['GET'])
    def backup_status():
        return jsonify(container.backup_service.get_backup_status())

    @app.route('/api/backups', methods=['POST'])
    def create_backup():
        data = _json_body()
        result = container.backup_service.create_backup(force=bool(data.get('force')))
        return jsonify(result), (201 if result['success'] else 500)

    @app.route('/api/backups/<filename>', methods=['GET'])
    def download_backup(filename):
        safe_name = secure_filename(filename)
        if safe_name != filename or not (safe_name.startswith('backup_') and safe_name.endswith('.zip')):
            raise HTTPNotFound('Respaldo no encontrado')
        return send_from_directory(container.backup_service.backup_root, safe_name, as_attachment=True)

    @app.route('/api/performance', methods=['GET'])
    def performance_stats():
        return jsonify(get_function_stats())


if __name__ == "__main__":
    # Configuración para desarrollo local y acceso desde red WiFi
    # En producción usar WSGI (gunicorn wsgi:app)
    configure_logging()
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    create_app().run(debug=DEBUG, host=HOST, port=PORT)
