"""User-facing notification texts."""

AUTH_FAILED = "Error de autenticación"
AUTH_PENDING = "Por favor, espera mientras autenticamos..."
INVALID_CREDENTIALS = "Por favor, verifica tus credenciales e intenta nuevamente"
LOAD_FAILED = "Error al cargar los viajes"
UPLOAD_FAILED = "Error al cargar los viajes"
DELETE_FAILED = "Error al eliminar los viajes"
UPDATE_FAILED = "Error al registrar la actualización"
NO_VALID_TRIPS = "No se encontraron viajes válidos en el archivo CSV"
EMPTY_FILE = "El archivo CSV está vacío"
NOT_CSV = "Solo se aceptan archivos .csv"
FILE_TOO_LARGE = "El archivo supera el tamaño máximo permitido"
TRIP_NOT_FOUND = "Viaje no encontrado"
UPDATE_CREATED = "Actualización registrada"
MALFORMED_FILE = "El archivo CSV no tiene un formato válido"


def upload_success(count: int) -> str:
    return f"Se cargaron {count} viajes exitosamente"


def delete_success(count: int) -> str:
    if count == 1:
        return "Viaje eliminado correctamente"
    return f"{count} viajes eliminados correctamente"
