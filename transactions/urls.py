from django.urls import path
from . import views

urlpatterns = [
    path('', views.TransactionListView.as_view(), name='transactions'),
]
