"""
Services package

- version_service.py: catalog queries, creation and downloads
- creation_throttle.py: rolling window quota on version creation
- download_service.py: download links and download counting
"""
