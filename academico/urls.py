from django.urls import path
from . import views

urlpatterns = [
    # --- AUTH ---
    path('api/register/', views.register_api, name='register_api'),
    path('api/login/', views.login_api, name='login_api'),
    path('api/logout/', views.logout_api, name='logout_api'),
    path('api/me/', views.me_api, name='me_api'),

    # --- PONDERADO ---
    path('api/curricula/', views.curricula_api, name='curricula_api'),
    path('api/calcular/', views.calcular_api, name='calcular_api'),
    path('api/ranking/', views.ranking_api, name='ranking_api'),

    # --- RIESGO ---
    path('api/riesgo/', views.risk_api, name='risk_api'),
    path('api/riesgo/<str:student_id>/', views.risk_detail_api, name='risk_detail_api'),

    # --- TUTORIAS ---
    path('api/tutorias/', views.tutoring_api, name='tutoring_api'),
    path('api/tutorias/<int:request_id>/', views.tutoring_detail_api, name='tutoring_detail_api'),

    # --- RECURSOS ---
    path('api/recursos/', views.resources_api, name='resources_api'),
    path('api/recursos/<int:resource_id>/', views.resource_detail_api, name='resource_detail_api'),

    # --- CHAT ---
    path('api/chat/', views.chat_api, name='chat_api'),
]
