"""Content IDs, blob storage backends (local, S3, SFTP) and hashing streams."""