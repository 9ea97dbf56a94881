# storage/base.py
from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional
from .dto import TokenInfo


class StorageClient(ABC):
    """
    Abstract base class for a cloud storage provider.
    Defines the common interface that every provider (e.g., Google Drive)
    must implement. All methods that talk to the provider raise
    StorageError on failure.
    """

    @abstractmethod
    def add(self, token: str, stream: BinaryIO, file_path: str) -> None:
        """
        Writes the content of a stream to the given path, replacing any
        existing file with the same name.

        :param token: The caller's access token.
        :param stream: A readable binary stream with the file content.
        :param file_path: The destination path of the file.
        """
        pass

    @abstractmethod
    def auth_url(self, state: str) -> str:
        """
        Returns the OAuth2 authorization URL the user has to visit.

        :param state: The anti-CSRF value the provider echoes back on the callback.
        """
        pass

    @abstractmethod
    def browse(self, token: str, folder_path: str) -> List[str]:
        """
        Lists the names of the entries in a folder.

        :param token: The caller's access token.
        :param folder_path: The path of the folder. An empty path is the root.
        :return: The entry names, in provider order.
        """
        pass

    @abstractmethod
    def delete(self, token: str, file_path: str) -> None:
        """
        Deletes a file or folder.

        :param token: The caller's access token.
        :param file_path: The path of the file to delete.
        """
        pass

    @abstractmethod
    def publish(self, token: str, file_path: str) -> str:
        """
        Makes a file publicly readable.

        :param token: The caller's access token.
        :param file_path: The path of the file to publish.
        :return: The public sharing URL.
        """
        pass

    @abstractmethod
    def read(self, token: str, file_path: str) -> Optional[BinaryIO]:
        """
        Opens a file for reading.

        :param token: The caller's access token.
        :param file_path: The path of the file to read.
        :return: A binary stream positioned at the start of the content, or
            None if the file has no downloadable content. The caller closes it.
        """
        pass

    @abstractmethod
    def validate(self, code: str) -> TokenInfo:
        """
        Exchanges an OAuth2 authorization code for an access token.

        :param code: The authorization code from the OAuth2 callback.
        :raises AuthCodeError: If the provider rejects the code.
        """
        pass
