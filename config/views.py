from django.db import connection
from django.http import JsonResponse


def health_check(request):
    """Liveness probe with a database round trip."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception as exc:
        return JsonResponse({
            'status': 'down',
            'database': {'ok': False, 'error': str(exc)},
        }, status=503)

    return JsonResponse({
        'status': 'ok',
        'database': {'ok': True},
    })


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)
