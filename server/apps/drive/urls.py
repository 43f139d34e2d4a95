"""URL routes of the drive JSON API and public links."""

from django.urls import path

from server.apps.drive import views

app_name = 'drive'

urlpatterns = [
    # Folders
    path('api/folders/', views.folders, name='folders'),
    path('api/folders/tree/', views.folder_tree, name='folder-tree'),
    path('api/folders/stats/', views.folder_stats, name='folder-stats'),
    path(
        'api/folders/<uuid:folder_id>/',
        views.folder_detail,
        name='folder-detail',
    ),
    path(
        'api/folders/<uuid:folder_id>/move/',
        views.folder_move,
        name='folder-move',
    ),
    path(
        'api/folders/<uuid:folder_id>/restore/',
        views.folder_restore,
        name='folder-restore',
    ),
    path(
        'api/folders/<uuid:folder_id>/permanent/',
        views.folder_permanent_delete,
        name='folder-permanent-delete',
    ),

    # Files
    path('api/files/', views.files, name='files'),
    path('api/files/upload/', views.file_upload, name='file-upload'),
    path(
        'api/files/upload-multiple/',
        views.file_upload_multiple,
        name='file-upload-multiple',
    ),
    path('api/files/stats/', views.file_stats, name='file-stats'),
    path('api/files/<uuid:file_id>/', views.file_detail, name='file-detail'),
    path(
        'api/files/<uuid:file_id>/download/',
        views.file_download,
        name='file-download',
    ),
    path(
        'api/files/<uuid:file_id>/preview/',
        views.file_preview,
        name='file-preview',
    ),
    path('api/files/<uuid:file_id>/move/', views.file_move, name='file-move'),
    path('api/files/<uuid:file_id>/copy/', views.file_copy, name='file-copy'),
    path(
        'api/files/<uuid:file_id>/restore/',
        views.file_restore,
        name='file-restore',
    ),
    path(
        'api/files/<uuid:file_id>/permanent/',
        views.file_permanent_delete,
        name='file-permanent-delete',
    ),

    # Trash
    path('api/trash/', views.trash, name='trash'),

    # Anonymous access by public link
    path(
        'public/folders/<str:public_link>/',
        views.public_folder,
        name='public-folder',
    ),
    path(
        'public/files/<str:public_link>/',
        views.public_file,
        name='public-file',
    ),
    path(
        'public/files/<str:public_link>/download/',
        views.public_file_download,
        name='public-file-download',
    ),
]
